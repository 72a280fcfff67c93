"""
Tests for notification message construction
"""

import pytest

from fleetrelay.core.schemas import Alert, NotificationDefinition
from fleetrelay.core.templating import build_message, render
from fleetrelay.exceptions.base import TemplateResolutionError


@pytest.fixture
def alert():
    return Alert(
        labels={"alertname": "KubeNodeDiskPressure", "node": "worker-0", "namespace": "openshift-etcd"},
        annotations={"node": "ignored", "runbook": "https://runbooks.example.com/disk"},
    )


class TestRender:
    """Test placeholder substitution"""

    def test_labels_replace_placeholders(self, alert):
        assert render("Node ${node} in ${namespace}", alert) == "Node worker-0 in openshift-etcd"

    def test_labels_win_over_annotations(self, alert):
        assert render("${node}", alert) == "worker-0"

    def test_annotations_used_as_fallback(self, alert):
        assert render("See ${runbook}", alert) == "See https://runbooks.example.com/disk"

    def test_missing_key_raises(self, alert):
        with pytest.raises(TemplateResolutionError) as exc_info:
            render("Pod ${pod} failed", alert)
        assert exc_info.value.key == "pod"

    def test_without_alert_returns_template(self):
        assert render("Node ${node}", None) == "Node ${node}"

    def test_template_without_placeholders(self, alert):
        assert render("Nothing to replace $node", alert) == "Nothing to replace $node"


class TestBuildMessage:
    """Test summary prefixes and description selection"""

    @pytest.fixture
    def definition(self):
        return NotificationDefinition(
            name="DiskPressure",
            summary="Disk pressure on ${node}",
            message="Node ${node} is running out of disk space",
            resolvedMessage="Node ${node} recovered",
            severity="Major",
            references=["https://docs.example.com/disk"],
        )

    def test_firing_message(self, definition, alert):
        message = build_message(definition, True, alert)
        assert message.summary == "Issue Notification: Disk pressure on worker-0"
        assert message.description == "Node worker-0 is running out of disk space"
        assert message.severity.value == "Major"
        assert message.references == ["https://docs.example.com/disk"]

    def test_resolved_message(self, definition, alert):
        message = build_message(definition, False, alert)
        assert message.summary == "Issue Resolution: Disk pressure on worker-0"
        assert message.description == "Node worker-0 recovered"

    def test_resolved_falls_back_to_message(self, alert):
        definition = NotificationDefinition(name="Plain", summary="Summary", message="Firing ${node}")
        assert build_message(definition, False, alert).description == "Firing worker-0"

    def test_limited_support_message(self, alert):
        definition = NotificationDefinition(
            name="Storage",
            summary="Storage exhausted",
            message="Storage on ${node} is exhausted",
            limitedSupport=True,
        )
        fired = build_message(definition, True, alert)
        resolved = build_message(definition, False, alert)

        assert fired.summary == "Storage exhausted"
        assert fired == resolved
