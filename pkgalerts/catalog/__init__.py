"""Read-only view of the package catalog and version ordering."""
