"""
Notification message construction
"""

import re
from typing import Optional

from .schemas import Alert, NotificationDefinition, NotificationMessage
from ..exceptions.base import TemplateResolutionError


ACTIVE_PREFIX = "Issue Notification"
RESOLVE_PREFIX = "Issue Resolution"

_PLACEHOLDER_RE = re.compile(r"\$\{([^{}]*)\}")


def render(template: str, alert: Optional[Alert]) -> str:
    """
    Replace ``${key}`` placeholders with alert label values, falling back to
    annotation values.

    Raises:
        TemplateResolutionError: If a key is neither a label nor an annotation
    """
    if alert is None:
        return template

    def resolve(match: "re.Match[str]") -> str:
        key = match.group(1)
        if key in alert.labels:
            return alert.labels[key]
        if key in alert.annotations:
            return alert.annotations[key]
        raise TemplateResolutionError(
            f"alert has no '{key}' label or annotation which could be used "
            f"to replace place holders in the template",
            key
        )

    return _PLACEHOLDER_RE.sub(resolve, template)


def build_message(
    definition: NotificationDefinition,
    firing: bool,
    alert: Optional[Alert] = None
) -> NotificationMessage:
    """
    Render the summary and description sent for one alert occurrence.

    Limited support reasons are matched by their details when removed, so a
    limited support notification carries the firing description and an
    unprefixed summary in both states.
    """
    if definition.limited_support:
        summary = definition.summary
        description = definition.message
    elif firing:
        summary = f"{ACTIVE_PREFIX}: {definition.summary}"
        description = definition.message
    else:
        summary = f"{RESOLVE_PREFIX}: {definition.summary}"
        description = definition.resolved_message or definition.message

    return NotificationMessage(
        summary=render(summary, alert),
        description=render(description, alert),
        severity=definition.severity,
        references=list(definition.references),
        log_type=definition.log_type,
    )
