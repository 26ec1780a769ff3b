SYSTEM_INSTRUCTION = """You are Parley, a sophisticated, highly intelligent and precise AI assistant.
You operate with absolute precision and accuracy.
You are helpful, witty, and have a touch of dry humor when appropriate."""

DEEP_SUFFIX = (
    " You are in 'Deep' mode. Engage in extensive reasoning, step-by-step analysis, "
    "and thorough exploration of the user's query."
)

CREATIVE_SUFFIX = (
    " You are in 'Creative' mode. Be imaginative, expressive, and think outside the box."
)

SAFETY_SETTINGS = [
    {"category": "HARM_CATEGORY_HARASSMENT", "threshold": "BLOCK_NONE"},
    {"category": "HARM_CATEGORY_HATE_SPEECH", "threshold": "BLOCK_NONE"},
    {"category": "HARM_CATEGORY_SEXUALLY_EXPLICIT", "threshold": "BLOCK_NONE"},
    {"category": "HARM_CATEGORY_DANGEROUS_CONTENT", "threshold": "BLOCK_NONE"},
]

ERROR_MESSAGE = (
    "I apologize, but I encountered an error while processing your request. "
    "It's possible the API key needs to be re-connected or does not have permission for this model."
)

KEY_GATE_MESSAGE = """Connect API Key
To access the Pro, Deep and Imagine models, set your Gemini API key in ${api_key_env}
(or add it to a .env file) and start parley again.
Billing information: https://ai.google.dev/gemini-api/docs/billing"""


def build_system_instruction(suffix: str = "") -> str:
    return SYSTEM_INSTRUCTION + suffix


def render_key_gate(api_key_env: str) -> str:
    return KEY_GATE_MESSAGE.replace("${api_key_env}", api_key_env)
