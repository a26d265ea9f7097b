from ._logging import get_logger  # noqa
from .errors import (  # noqa
    EntityError,
    EntityErrorsError,
    NorthwindConfigError,
    NorthwindError,
    SaveBundleError,
)
from .models import (  # noqa
    AbstractContextProvider,
    AbstractSaveGuard,
    AfterSaveEntitiesHook,
    BeforeSaveEntitiesHook,
    BeforeSaveEntityHook,
    EntityInfo,
    EntityState,
    KeyMapping,
    SaveBundleInput,
    SaveMap,
    SaveResult,
    is_saveable,
)
