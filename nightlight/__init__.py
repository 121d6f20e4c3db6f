"""Read and rewrite the Windows Night Light settings and state blobs."""

from .blob import DEFAULT_TAIL, Blob  # noqa: F401
from .clock import (  # noqa: F401
    LATEST_DATETIME_FILETIME,
    LATEST_FILETIME,
    MIDNIGHT,
    TimeFrame,
    TimeOfDay,
    datetime_to_filetime,
    filetime_from_unix,
    filetime_to_datetime,
)
from .errors import (  # noqa: F401
    BlobNotFound,
    Expired,
    ExternalIoError,
    IrreconcilableChanges,
    MalformedBlob,
    MalformedField,
    MalformedPrologue,
    MalformedVlq,
    NightLightError,
    PreviewInProgress,
    StaleWrite,
    ValidationError,
)
from .fields import FieldSpec, Payload, ScanResult, emit_fields, scan_fields  # noqa: F401
from .guard import TIMESTAMP_STEP, WriteGuard  # noqa: F401
from .night_light import EXPIRATION_TIMEOUT, REASONABLE_INIT_DELAY, NightLight  # noqa: F401
from .prologue import Prologue, build_prologue, read_timestamp  # noqa: F401
from .schedule import (  # noqa: F401
    ScheduleType,
    effective_schedule_type,
    location_services_enabled,
)
from .settings import (  # noqa: F401
    DEFAULT_COLOR_TEMPERATURE,
    MAX_COLOR_TEMPERATURE,
    MIN_COLOR_TEMPERATURE,
    SETTINGS_FIELDS,
    SettingsBlob,
)
from .state import STATE_FIELDS, StateBlob, TransitionCause  # noqa: F401
from .store import (  # noqa: F401
    LOCATION_CONSENT_PATHS,
    SETTINGS_LOCATION,
    STATE_LOCATION,
    BlobLocation,
    BlobStore,
    MemoryBlobStore,
    MemoryPermissionReader,
    PermissionReader,
)
from .vlq import (  # noqa: F401
    decode_vlq,
    decode_zigzag_vlq,
    encode_vlq,
    encode_zigzag_vlq,
    zigzag_decode,
    zigzag_encode,
)
