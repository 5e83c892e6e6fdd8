"""
Centralized Help Text Constants

CLI help texts for commands and options, and the process exit codes used
by every subcommand.
"""


# Exit codes for different error types
class ExitCodes:
    SUCCESS = 0
    GENERAL_ERROR = 1
    MISSING_REQUIRED_OPTION = 2
    INVALID_CONFIGURATION = 3
    ENHANCEMENT_FAILED = 4
    AUTHENTICATION_ERROR = 5
    FILE_NOT_FOUND = 6
    PERMISSION_ERROR = 7
    NETWORK_ERROR = 8
    JOB_FAILED = 9


# Command help texts
MAIN_HELP = (
    "Memory Keeper AI - turn recorded family memories into illustrated, "
    "narrated stories."
)
ENHANCE_HELP = "Enhance a memory transcript into a titled, tagged and illustrated story."
TRANSCRIBE_HELP = "Transcribe a recorded memory (audio file) to text with AssemblyAI."
DAILY_PROMPT_HELP = "Print today's memory prompt for a category."
CHAT_HELP = "Ask a question and get an answer in a grandparent's voice, grounded in their stories."

# Shared option help texts
CONFIG_HELP = "Path to configuration file (default: .memory-keeper/config.yaml)"
LOG_LEVEL_HELP = "Logging level"
LOG_FILE_HELP = "Also write logs to this file (rotated at 10MB)"

# Enhance command
ENHANCE_INPUT_HELP = "Path to the transcript text file ('-' reads stdin)"
ENHANCE_ANSWERS_HELP = "Path to a text file with answers to earlier follow-up questions"
ENHANCE_OUTPUT_HELP = "Write the result JSON here instead of stdout"
ENHANCE_WAIT_HELP = (
    "Wait for the illustration before writing the result "
    "(--no-wait-image writes immediately; image_status stays 'pending')"
)
ENHANCE_IMAGE_TIMEOUT_HELP = "Seconds to wait for the illustration"
CUSTOM_PROMPTS_HELP = "Directory with custom prompt templates overriding the defaults"

# Transcribe command
TRANSCRIBE_INPUT_HELP = "Path to an audio file (.mp3, .wav, .m4a, ...)"
TRANSCRIBE_OUTPUT_HELP = "Write the transcript here instead of stdout"

# Daily prompt / chat commands
CATEGORY_HELP = "Memory category, e.g. CHILDHOOD, CAREER, LOVE"
STORY_HELP = "Path to a story text file (repeatable)"
QUESTION_HELP = "Question to ask"
GRANDPARENT_NAME_HELP = "Name the grandparent answers as"

CONFIGURATION_SETUP_HINT = (
    "\nSetup instructions:\n"
    "  - Text generation: set GROQ_API_KEY\n"
    "  - Sentiment/emotions: set HUGGINGFACE_API_KEY\n"
    "  - Illustrations: set REPLICATE_API_KEY (or STABILITY_API_KEY with image_provider: stability)\n"
    "  - Narration: StreamElements needs no key; ELEVENLABS_API_KEY for speech_provider: elevenlabs\n"
    "  - Transcription: set ASSEMBLYAI_API_KEY\n"
    "  - Storage: storage.backend local (default) or s3 with storage.s3_bucket"
)
