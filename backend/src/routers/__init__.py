from .cache import router as cache_router
from .leias import router as leias_router
from .models import router as models_router
from .wizard import router as wizard_router

__all__ = ["cache_router", "leias_router", "models_router", "wizard_router"]
