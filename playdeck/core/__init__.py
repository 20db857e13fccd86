"""Domain types shared by the worker, the UI and the batch driver."""

from .navigation import DEFAULT_ROUTE, FocusRegion, NavigationStack, Route, ViewId
from .pages import Page, PagedResultCache
from .remote import RemoteClient

__all__ = [
    "DEFAULT_ROUTE",
    "FocusRegion",
    "NavigationStack",
    "Page",
    "PagedResultCache",
    "RemoteClient",
    "Route",
    "ViewId",
]
