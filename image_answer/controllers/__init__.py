"""FastAPI routers acting as controllers in the MVC architecture."""

from . import flowise, narration, pipeline

__all__ = ["flowise", "narration", "pipeline"]
