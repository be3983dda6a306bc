from .genmap_client import GenmapClient

__all__ = ['GenmapClient']
