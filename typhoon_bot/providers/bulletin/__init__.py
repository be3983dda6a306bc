from .jma_bulletin import JmaBulletinSource

__all__ = ['JmaBulletinSource']
