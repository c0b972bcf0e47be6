from files_proxy.storage.local import LocalStorage

__all__ = ["LocalStorage"]
