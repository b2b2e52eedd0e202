"""
Prompt template interpolation against a run's PipelineState.

`{token}` placeholders resolve to state fields (input, context, intent,
last_output; case-insensitive) or to earlier node outputs by node id.
Interpolation is total: unknown or empty tokens become "".
"""

import re
from typing import Any

from agentflow.shared.models import PipelineState, to_text

_TOKEN_RE = re.compile(r"\{(.*?)\}")

_RESERVED_TOKENS = {
    "input": lambda state: state.input,
    "context": lambda state: state.context,
    "intent": lambda state: state.intent,
    "last_output": lambda state: state.last_output,
}


def resolve_token(token: str, state: PipelineState) -> str:
    """Resolve one placeholder name to its text value."""
    if not token:
        return ""

    reserved = _RESERVED_TOKENS.get(token.lower())
    if reserved is not None:
        return reserved(state) or ""

    value: Any = state.lookup_variable(token)
    if value is None:
        return ""
    return to_text(value)


def interpolate(template: str, state: PipelineState) -> str:
    """Replace every {token} in the template; never raises."""
    if not template:
        return ""
    return _TOKEN_RE.sub(lambda match: resolve_token(match.group(1).strip(), state), template)
