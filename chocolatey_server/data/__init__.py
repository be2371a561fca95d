"""
Loading of the package feed.

This package is responsible for:
* Reading every hosted nupkg archive given at startup.
* Reading the optional catalog of packages hosted elsewhere.
* Normalizing the combined list and rejecting duplicate package ids.
"""
