from lending_registry import LendingRegistry


def test_search_items_matches_title_or_author(registry):
    assert [i.id for i in registry.search_items("clean")] == ["B001"]
    assert [i.id for i in registry.search_items("GANG")] == ["B002"]
    assert [i.id for i in registry.search_items("  pr ")] == ["B003"]
    assert registry.search_items("") == []
    assert registry.search_items(None) == []


def test_search_results_are_snapshots(registry):
    registry.search_items("clean")[0].mark_borrowed()
    assert registry.find_item("B001").available


def test_members_with_held_items(registry):
    assert registry.members_with_held_items() == []
    registry.borrow("M001", "B002")
    registry.borrow("M001", "B001")
    assert registry.members_with_held_items() == [
        {"Member ID": "M001", "Name": "Alice", "HeldItems": ["B001", "B002"]}]


def test_export_report_items(registry):
    registry.borrow("M002", "B003")
    df = registry.export_report_items()
    assert list(df.columns) == ["Item ID", "Title", "Author", "Availability"]
    assert len(df) == 3
    status = dict(zip(df["Item ID"], df["Availability"]))
    assert status == {"B001": "Available", "B002": "Available", "B003": "Issued"}


def test_export_report_members(registry):
    registry.borrow("M001", "B002")
    registry.borrow("M001", "B001")
    df = registry.export_report_members().set_index("Member ID")
    assert df.loc["M001", "HeldCount"] == 2
    assert df.loc["M001", "HeldItems"] == "B001,B002"
    assert df.loc["M001", "MaxItems"] == 3
    assert df.loc["M002", "HeldCount"] == 0
    assert df.loc["M002", "HeldItems"] == ""


def test_empty_reports_keep_columns():
    reg = LendingRegistry()
    assert reg.export_report_items().empty
    assert list(reg.export_report_members().columns) == ["Member ID", "Name", "MaxItems", "HeldCount", "HeldItems"]
    assert list(reg.export_lending_log().columns) == ["timestamp", "member_id", "item_id", "action"]


def test_lending_log_records_only_successes(registry):
    registry.borrow("M001", "B001")
    registry.borrow("M002", "B001")
    registry.return_item("M002", "B001")
    registry.return_item("M001", "B001")
    log = registry.export_lending_log()
    assert log[["member_id", "item_id", "action"]].values.tolist() == [
        ["M001", "B001", "borrow"], ["M001", "B001", "return"]]
    assert log["timestamp"].str.endswith("+00:00").all()
