"""
SnackCart Client — Catalog View-Model Package
==============================================

What:  Everything the admin grid needs besides rendering.

    state      frozen CatalogState and the pure transitions over it
    previews   local preview references for chosen photos
    api        httpx transport for /api/snacks
    viewmodel  CatalogViewModel, the async controller tying them together
"""

from snackcart.client.api import SnackApiClient
from snackcart.client.previews import PreviewRegistry
from snackcart.client.state import CatalogState, ChosenFile, FetchStatus, Notice, NoticeLevel, Snack
from snackcart.client.viewmodel import CatalogViewModel

__all__ = [
    "CatalogState",
    "CatalogViewModel",
    "ChosenFile",
    "FetchStatus",
    "Notice",
    "NoticeLevel",
    "PreviewRegistry",
    "Snack",
    "SnackApiClient",
]
