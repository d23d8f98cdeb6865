from .gateway import StorageGateway, SQLModelGateway

__all__ = ["StorageGateway", "SQLModelGateway"]
