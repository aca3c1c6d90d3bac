"""All magic values live here, no inline literals anywhere else."""

# Telegram chat action re-send interval (seconds).
# A chat action expires after ~5 s, so we refresh every 4 s.
TELEGRAM_ACTION_INTERVAL: float = 4.0

# Commands
CMD_SNAP = "snap"
CMD_FLIP = "flip"
CMD_RESET = "reset"
CMD_STATUS = "status"
CMD_PROMPT = "prompt"
CMD_HELP = "help"
CMD_START = "start"

# Camera
CAMERA_INDEX_BACK = 0
CAMERA_INDEX_FRONT = 1
JPEG_QUALITY = 80
JPEG_MIME = "image/jpeg"
DATA_URI_PREFIX = "data:image/jpeg;base64,"
PHOTO_FILENAME_PREFIX = "snapsight-"
PHOTO_FILENAME_SUFFIX = ".jpg"

# Stream warm-up. The settle delay is empirical: the first frames after
# playback starts are often black or stale.
CAMERA_SETTLE_DELAY: float = 1.0
CAMERA_WARMUP_TIMEOUT: float = 10.0
WARMUP_POLL_INTERVAL: float = 0.1

# Analysis
VISION_MODEL = "gpt-4o"
CLAUDE_VISION_MODEL = "claude-sonnet-4-5-20250929"
MAX_TOKENS = 500
ANALYSIS_TIMEOUT: float = 60.0
ANALYSIS_INSTRUCTION = "Analyze this image"
MSG_DEMO_MODE = "Demo mode: API key not found"
MSG_PLACEHOLDER_ANALYSIS = (
    "Test image analysis: The photo shows a camera or screen. This is a demo of the app. "
    "For real AI analysis, make sure the OpenAI API key is configured correctly."
)
MSG_ANALYSIS_FAILED = "Failed to analyze image: %s"
MSG_API_KEY_HINT = "\n\nCheck the API key in your .env file"

# Prompt settings
PROMPT_STORE_PATH = ".snapsight_prompt.json"
PROMPT_STORE_KEY = "customPrompt"
PROMPT_PRESET_CUSTOM = "custom"
DEFAULT_PROMPT = (
    "You are a shopping assistant. Identify the central object in the photo. "
    "If it is a product, for example a bottle of wine, recognize it and describe "
    "its name, type, volume or weight, country of origin, average price, composition, "
    "expert opinion and a score out of 100. Answer only what can be determined from the "
    "photo, skip anything that cannot, and do not describe unrelated people or objects. "
    "Write briefly, in plain connected sentences without headings or bullet points."
)
PROMPT_PRESETS: dict[str, str] = {
    "detailed": (
        "You are an image analysis expert. Describe in detail what you see in the photograph: "
        "main objects and their location, colors and lighting, mood and atmosphere, "
        "and any interesting details."
    ),
    "simple": "Describe in simple language what is shown in the photograph. Use 2-3 sentences.",
    "story": (
        "Create a short story inspired by this image. Be creative and add emotions. "
        "Use no more than 100 words."
    ),
    "technical": (
        "Analyze the technical quality of the photograph: composition and framing, "
        "lighting and exposure, sharpness and focus, color rendition and overall quality. "
        "Give improvement advice."
    ),
}

# Log messages
MSG_BOT_STARTING = "Starting snapsight bot…"
MSG_BLOCKED_CHAT = "Blocked update from chat_id: %s"
MSG_SEND_OK = "✓ Sent (%.1fs)"
MSG_SEND_FAIL = "✗ Send failed (%.1fs)"

# User-facing replies
MSG_NO_CAMERA_ACCESS = "No camera access\nPlease allow camera access on the host and restart the bot."
MSG_INIT_ERROR = "Initialization Error\n%s"
MSG_ACCESS_PENDING = "Requesting camera permission…"
MSG_CAPTURE_FAILED = "Failed to take photo: %s"
MSG_API_ERROR = "API Error\n%s"
MSG_BUSY = "Analyzing image… please wait."
MSG_CYCLE_ACTIVE = "A photo is already on screen. Send /reset to take another one."
MSG_RESET_DONE = "Camera ready."
MSG_CAMERA_UNAVAILABLE = "Camera is not available right now. Send /reset to try again."
MSG_FLIPPED = "Camera switched to %s."
MSG_FLIP_FAILED = "Could not switch camera: %s"
MSG_PROMPT_SAVED = "Saved\nPrompt saved successfully!"
MSG_PROMPT_EMPTY = "Prompt must not be empty."
MSG_PROMPT_CANCELLED = "Prompt edit cancelled."
MSG_PROMPT_NOT_EDITING = "No prompt edit in progress. Send /prompt edit first."
MSG_PROMPT_ACTIVE = "Active prompt:\n\n%s"
MSG_PROMPT_DRAFT = "Draft prompt:\n\n%s\n\nSend /prompt save, /prompt cancel or /prompt default."
MSG_PROMPT_PRESET_LOCKED = "Prompt preset '%s' is configured; edits apply once SYSTEM_PROMPT_PRESET=custom."
MSG_PROMPT_USAGE = (
    "Usage:\n"
    "  /prompt               show the active prompt\n"
    "  /prompt edit          start editing\n"
    "  /prompt set <text>    replace the draft\n"
    "  /prompt default       load the built-in prompt into the draft\n"
    "  /prompt save          save the draft\n"
    "  /prompt cancel        discard the draft"
)
MSG_STATUS = (
    "Status\n"
    "  Access  : %s\n"
    "  Camera  : %s (%s)\n"
    "  Ready   : %s\n"
    "  Mode    : %s\n"
    "  Prompt  : %s\n"
)

MSG_HELP = (
    "snapsight: point the camera, get a description\n"
    "\n"
    "Commands:\n"
    "  /snap      take a photo and analyze it\n"
    "  /reset     clear the photo and reopen the camera\n"
    "  /flip      switch between front and back camera\n"
    "  /prompt    view or edit the analysis prompt\n"
    "  /status    current state at a glance\n"
    "  /help      show this message\n"
)
