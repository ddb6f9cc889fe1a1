"""All magic numbers and configuration constants."""

DEFAULT_WPM = 450                   # words per minute
MIN_WPM = 100
MAX_WPM = 1200
DEFAULT_CHUNK_SIZE = 1              # words per body chunk
MAX_CHUNK_SIZE = 5                  # chunk size cycles 1..5
DEFAULT_PAUSE_MS = 500              # ms gap after every title
SPEED_STEP = 50                     # wpm, small speed adjustment
SPEED_STEP_BIG = 100                # wpm, large speed adjustment
NAV_STEP = 5                        # chunks per rewind/skip
ORP_RATIO = 0.38                    # pivot position as fraction of word length
PLAIN_TITLE_MAX_LEN = 100           # colon-terminated lines shorter than this may be titles
CAPS_TITLE_MIN_LEN = 5              # no-lowercase lines longer than this ...
CAPS_TITLE_MAX_LEN = 80             # ... and shorter than this are level-3 titles
MAX_TEXT_BYTES = 10 * 1024 * 1024   # markdown / plain text size limit
MAX_BINARY_BYTES = 50 * 1024 * 1024 # pdf / epub size limit
SUPPORTED_EXTENSIONS = (".md", ".markdown", ".txt", ".pdf", ".epub")
STATE_DIR = "~/.rsvp_pacer/state"   # persisted reading positions
CONFIG_FILE = "~/.rsvp_pacer/config.json"
HELP_TEXT = (
    "SPACE: pause | +/-: ±50 wpm | >/<: ±100 | 0: reset speed | [ ]: rewind/skip 5 | "
    "c: cycle chunks | n/p: next/prev source | a: auto-advance | s: stop | q: quit | ?: help"
)
VERSION = "0.1.0"
