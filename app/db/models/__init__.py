from .common import *  # noqa
from .periods import *  # noqa
from .documents import *  # noqa
from .signoffs import *  # noqa
from .audit import *  # noqa

# Transactional outbox table
from app.events.outbox import *  # noqa
