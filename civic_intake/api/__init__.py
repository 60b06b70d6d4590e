from civic_intake.api.app import build_default_app, create_app

__all__ = ["build_default_app", "create_app"]
