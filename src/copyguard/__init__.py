"""copyguard - Safety gate for copying AI-generated text.

copyguard provides:
- A pre-copy gate that scores content and warns above a user threshold
- An explicit, two-step override workflow with an audit trail
- A bounded humanization regeneration ladder
- Rule-based threshold learning from override history
"""

__version__ = "1.0.0"

from . import (
    core as core,
)
from . import (
    safety as safety,
)
