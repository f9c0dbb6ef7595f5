from pathlib import Path

# This calculates the absolute path to the project's root directory
# It starts from this file's location (.../src/sitecraft/config.py) and goes up three levels.
ROOT_DIR = Path(__file__).resolve().parent.parent.parent

LOGS_DIR = ROOT_DIR / "logs"
SETTINGS_FILE = ROOT_DIR / "user_settings.json"
PROJECTS_DIR = Path("~/.sitecraft/projects")

# Generation parameters for the site builder model.
GENERATION_CONFIG = {
    "model": "gemini-2.5-pro",
    "temperature": 0.2,
    "top_p": 0.95,
    "max_tokens": 8192,
}

# How many recent non-system transcript messages are sent back as context.
TRANSCRIPT_CONTEXT_MESSAGES = 6

# Fence convention wrapping the structured file block in streamed responses.
FENCE_OPEN = "```json"
FENCE_CLOSE = "```"

SUPPORTED_LANGUAGES = ("en", "ar")
DEFAULT_LANGUAGE = "en"

# Design critique requests: a little more latitude than site generation.
CRITIQUE_TEMPERATURE = 0.5
CRITIQUE_REQUEST_MARKER = "[Requested Design & Accessibility Critique]"
