"""Internal constants shared across the library."""

DEFAULT_MODBUS_PORT = 502
DEFAULT_NTP_PORT = 123
DEFAULT_HOST = "0.0.0.0"
DEFAULT_TIMEZONE_OFFSET_HOURS = 8
DEFAULT_UPDATE_INTERVAL = 0.1
DEFAULT_MAX_CONNECTIONS = 100

# ------------------------------------------------------------------
# Modbus TCP
# ------------------------------------------------------------------

REGISTER_COUNT = 100
MBAP_HEADER_SIZE = 7
MIN_FRAME_SIZE = 12
MAX_READ_QUANTITY = 125
READ_BUFFER_SIZE = 4096

# Register windows reported by the status snapshot.
STATUS_HOLDING_WINDOW = 30
STATUS_INPUT_WINDOW = 10

WORD_MASK = 0xFFFF

# ------------------------------------------------------------------
# NTP
# ------------------------------------------------------------------

NTP_PACKET_SIZE = 48
NTP_EPOCH_DELTA = 2_208_988_800  # 1900-01-01 -> 1970-01-01
NTP_FRACTION_SCALE = 1 << 32
NTP_FIXED_POINT_SCALE = 65536
NTP_POLL_MIN = 4
NTP_POLL_MAX = 10
NTP_POLL_DEFAULT = 6
NTP_PRECISION = -20
NTP_REFERENCE_ID = "GPS"
