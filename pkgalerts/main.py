from pkgalerts.api.main import app

__all__ = ["app"]
