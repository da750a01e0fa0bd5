# Namespace for pipeline steps
from .load_index_updates import LoadIndexUpdates  # noqa: F401
from .push_index_updates import PushIndexUpdates  # noqa: F401
from .validate_fixture import ValidateFixture  # noqa: F401
