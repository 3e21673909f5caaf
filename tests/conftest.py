import sys
import pathlib
# Add project root to sys.path so imports from repo root work when running the tests
sys.path.insert(0, str(pathlib.Path(__file__).resolve().parent.parent))

import pytest

from lending_registry import LendingRegistry, NotificationChannel


class RecordingChannel(NotificationChannel):
    """Fake channel that keeps every (recipient, message) pair it receives."""

    def __init__(self):
        self.sent = []

    def notify(self, recipient_id, message):
        self.sent.append((recipient_id, message))

    @property
    def count(self):
        return len(self.sent)

    @property
    def last_recipient(self):
        return self.sent[-1][0] if self.sent else ""

    @property
    def last_message(self):
        return self.sent[-1][1] if self.sent else ""

    def clear(self):
        self.sent.clear()


class FailingChannel(NotificationChannel):
    def __init__(self):
        self.attempts = 0

    def notify(self, recipient_id, message):
        self.attempts += 1
        raise ConnectionError("channel down")


@pytest.fixture
def channel():
    return RecordingChannel()


@pytest.fixture
def registry(channel):
    reg = LendingRegistry(channel)
    reg.register_item("B001", "Clean Code", "Robert Martin")
    reg.register_item("B002", "Design Patterns", "Gang of Four")
    reg.register_item("B003", "The Pragmatic Programmer", "Hunt & Thomas")
    reg.register_member("M001", "Alice")
    reg.register_member("M002", "Bob")
    return reg


def assert_consistent(reg):
    """Availability and holdership must describe the same fact for every item."""
    report = reg.export_report_members()
    holders = {}
    for _, row in report.iterrows():
        assert row["HeldCount"] <= row["MaxItems"]
        for item_id in filter(None, row["HeldItems"].split(",")):
            assert item_id not in holders, f"{item_id} held by two members"
            holders[item_id] = row["Member ID"]
    for _, row in reg.export_report_items().iterrows():
        assert (row["Availability"] == "Issued") == (row["Item ID"] in holders)
