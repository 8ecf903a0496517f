"""Flow engine constants shared across the package.

These values are referenced by the option normalizer, the response resolver,
and the flow calculator.  They mirror conventions baked into persisted
questionnaire data (option id prefixes, negation markers, voice markers).

The tunables can be overridden via environment variables so that
deployments can adjust matching heuristics without code changes.
"""

import os

# Option ids derived from (question_id, value) start with this prefix.
OPTION_ID_PREFIX = "opt_"

# Options authored before their question was persisted get temporary ids.
# These must be regenerated once the question receives a real id.
TEMP_OPTION_ID_PREFIX = "opt_temp_"

# A legacy ``depends_on_answer`` starting with this means "is not".
NEGATION_PREFIX = "!"

# Stored voice responses carry this marker and are never JSON-decoded.
VOICE_RESPONSE_MARKER = "[Audio:"

# Only these question types carry selectable options.
CHOICE_QUESTION_TYPES: set[str] = {"radio", "checkbox"}

# Graph mode walks at most FACTOR * len(questions) steps.
# Overridable via FLOW_MAX_ATTEMPTS_FACTOR env var.
FLOW_MAX_ATTEMPTS_FACTOR = int(os.getenv("FLOW_MAX_ATTEMPTS_FACTOR", "3"))

# Response values this long (or longer) are never used verbatim as
# branch-map keys.  Overridable via BRANCH_KEY_MAX_LENGTH env var.
BRANCH_KEY_MAX_LENGTH = int(os.getenv("BRANCH_KEY_MAX_LENGTH", "100"))

# When an id-shaped answer does not carry the expected question prefix,
# the value is assumed to live in this many trailing segments.
ID_TAIL_SEGMENTS = int(os.getenv("ID_TAIL_SEGMENTS", "5"))

# Words shorter than this are ignored by the word-overlap heuristic.
MIN_MATCH_WORD_LENGTH = int(os.getenv("MIN_MATCH_WORD_LENGTH", "3"))

# Default questionnaire directory for QuestionnaireStore (None -> repo root).
QUESTIONNAIRE_DIR = os.getenv("FIELDFLOW_QUESTIONNAIRE_DIR") or None

# Log level used by the command-line tools.
LOG_LEVEL = os.getenv("FIELDFLOW_LOG_LEVEL", "INFO").upper()
