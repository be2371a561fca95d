from typing import Optional

from chocolatey_server.domain.entities import PackageFeed

_feed: Optional[PackageFeed] = None


def get_feed() -> PackageFeed:
    if _feed is None:
        raise RuntimeError("Package feed has not been loaded")
    return _feed


def set_feed(feed: Optional[PackageFeed]) -> None:
    """
    Swap in a fully built feed. Requests already in flight keep the feed
    they started with.
    """
    global _feed
    _feed = feed
