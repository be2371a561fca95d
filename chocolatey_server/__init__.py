"""
A minimal NuGet v2 / OData feed that serves Chocolatey packages.

Package archives are read once at startup; their nuspec metadata is
normalized into an in-memory list that the feed routes query and render.
"""

__version__ = "0.1.0"
