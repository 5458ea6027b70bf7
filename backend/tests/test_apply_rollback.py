import pytest
from sqlalchemy.orm import sessionmaker

from app.agent.apply import apply_changes
from app.agent.rollback import NOT_ROLLBACKABLE, rollback_actions
from app.db.init_db import init_db
from app.db.session import build_engine
from app.models.action_queue import ActionQueueEntry, ActionStatus
from app.models.website import Website
from app.schemas.ai_command import ChangeToApply
from app.services.action_queue_service import ActionLog

from conftest import OPERATOR_ID, FakeProvider

pytestmark = pytest.mark.anyio


def _change(change_id, resource_type="media", resource_id="42", field="alt_text",
            current="", proposed="new", selected=True):
    return ChangeToApply(
        id=change_id, resource_type=resource_type, resource_id=resource_id, field=field,
        current_value=current, proposed_value=proposed, selected=selected,
    )


async def test_apply_writes_and_completes(provider, action_log, db):
    results = await apply_changes(provider, action_log, [_change("c1", proposed="Bike")])

    assert results == [{"change_id": "c1", "success": True, "action_id": results[0]["action_id"]}]
    entry = db.get(ActionQueueEntry, results[0]["action_id"])
    assert entry.status == ActionStatus.COMPLETED
    assert entry.action_type == "update_media"
    assert entry.action_payload == {"resource_id": "42", "field": "alt_text", "value": "Bike"}
    assert entry.before_state["value"] == ""
    assert entry.after_state["value"] == "Bike"
    assert provider.media[42]["alt_text"] == "Bike"


async def test_unselected_changes_are_dropped(provider, action_log, db):
    results = await apply_changes(provider, action_log, [
        _change("c1", proposed="A"),
        _change("c2", resource_id="43", proposed="B", selected=False),
    ])
    assert [r["change_id"] for r in results] == ["c1"]
    assert db.query(ActionQueueEntry).count() == 1
    assert provider.media[43]["alt_text"] == "old"


async def test_partial_failure_does_not_block_other_changes(provider, action_log, db):
    provider.failures[("update_page", 7)] = "WP API Error (500): database error"
    results = await apply_changes(provider, action_log, [
        _change("c1", proposed="Bike"),
        _change("c2", resource_type="page", resource_id="7", field="title", current="About", proposed="About us"),
        _change("c3", resource_id="43", current="old", proposed="Shop front"),
    ])

    assert [r["success"] for r in results] == [True, False, True]
    assert "database error" in results[1]["error"]
    statuses = [db.get(ActionQueueEntry, r["action_id"]).status for r in results]
    assert statuses == [ActionStatus.COMPLETED, ActionStatus.FAILED, ActionStatus.COMPLETED]
    failed = db.get(ActionQueueEntry, results[1]["action_id"])
    assert "database error" in failed.error_message


async def test_meta_description_maps_to_yoast(provider, action_log):
    await apply_changes(provider, action_log, [
        _change("c1", resource_type="page", resource_id="7", field="meta_description", proposed="About our shop"),
    ])
    assert provider.writes == [("update_page", (7, {"meta": {"_yoast_wpseo_metadesc": "About our shop"}}))]


async def test_plugin_and_product_routing(provider, action_log):
    results = await apply_changes(provider, action_log, [
        _change("p", resource_type="plugin", resource_id="akismet/akismet.php", field="active",
                current="false", proposed="true"),
        _change("w", resource_type="product", resource_id="5", field="regular_price",
                current="10.00", proposed="12.50"),
    ])
    assert all(r["success"] for r in results)
    assert provider.plugins["akismet/akismet.php"]["active"] is True
    assert provider.products[5]["regular_price"] == "12.50"


async def test_unsupported_changes_fail_individually(provider, action_log):
    results = await apply_changes(provider, action_log, [
        _change("a", resource_type="widget", resource_id="1"),
        _change("b", field="mime_type"),
        _change("c", resource_type="plugin", resource_id="akismet/akismet.php", field="active", proposed="maybe"),
        _change("d", resource_id="abc"),
    ])
    assert [r["success"] for r in results] == [False, False, False, False]
    assert provider.writes == []


async def test_apply_proceeds_despite_in_flight_conflict(provider, action_log, db, caplog):
    action_log.enqueue("update_media", {}, resource_type="media", resource_id="42")
    results = await apply_changes(provider, action_log, [_change("c1", proposed="Bike")])
    assert results[0]["success"] is True
    assert "in-flight action" in caplog.text


async def test_rollback_restores_before_state(provider, action_log, db):
    applied = await apply_changes(provider, action_log, [_change("c1", resource_id="43", current="old", proposed="new")])
    assert provider.media[43]["alt_text"] == "new"

    results = await rollback_actions(provider, action_log, [applied[0]["action_id"]])
    assert results == [{"action_id": applied[0]["action_id"], "success": True}]
    assert provider.media[43]["alt_text"] == "old"
    assert db.get(ActionQueueEntry, applied[0]["action_id"]).status == ActionStatus.ROLLED_BACK


async def test_rollback_runs_in_reverse_order(provider, action_log):
    applied = await apply_changes(provider, action_log, [
        _change("c1", resource_id="42", current="", proposed="one"),
        _change("c2", resource_id="43", current="old", proposed="two"),
        _change("c3", resource_type="post", resource_id="9", field="title", current="News", proposed="Updates"),
    ])
    ids = [r["action_id"] for r in applied]
    provider.calls.clear()

    results = await rollback_actions(provider, action_log, ids)

    assert [r["action_id"] for r in results] == list(reversed(ids))
    assert [call[0] for call in provider.writes] == ["update_post", "update_media_item", "update_media_item"]
    assert [call[1][0] for call in provider.writes] == [9, 43, 42]


async def test_rollback_ineligible_entries(provider, action_log, db):
    provider.failures["update_media_item"] = "boom"
    failed = await apply_changes(provider, action_log, [_change("c1")])
    provider.failures.clear()

    direct = action_log.enqueue("clear_cache", {})
    action_log.complete(direct, after_state={"result": {}})

    ok = await apply_changes(provider, action_log, [_change("c2", resource_id="43", current="old")])
    await rollback_actions(provider, action_log, [ok[0]["action_id"]])
    provider.calls.clear()

    ids = [failed[0]["action_id"], direct.id, ok[0]["action_id"], "no-such-id"]
    results = await rollback_actions(provider, action_log, ids)

    assert all(r == {"action_id": r["action_id"], "success": False, "error": NOT_ROLLBACKABLE} for r in results)
    assert provider.writes == []
    assert db.get(ActionQueueEntry, failed[0]["action_id"]).status == ActionStatus.FAILED


async def test_failed_rollback_leaves_entry_completed(provider, action_log, db):
    applied = await apply_changes(provider, action_log, [_change("c1", proposed="Bike")])
    action_id = applied[0]["action_id"]

    provider.failures["update_media_item"] = "WP API Error (503): unavailable"
    results = await rollback_actions(provider, action_log, [action_id])
    assert results[0]["success"] is False
    assert "unavailable" in results[0]["error"]
    assert db.get(ActionQueueEntry, action_id).status == ActionStatus.COMPLETED

    provider.failures.clear()
    retry = await rollback_actions(provider, action_log, [action_id])
    assert retry[0]["success"] is True
    assert provider.media[42]["alt_text"] == ""


async def test_menu_item_apply_creates_and_rollback_deletes(provider, action_log, db):
    applied = await apply_changes(provider, action_log, [
        _change("m", resource_type="menu_item", resource_id="3", field="title", proposed="Contact"),
    ])
    entry = db.get(ActionQueueEntry, applied[0]["action_id"])
    assert entry.status == ActionStatus.COMPLETED
    item_id = entry.after_state["created_item_id"]
    assert provider.menu_items[item_id]["title"] == "Contact"
    assert provider.menu_items[item_id]["menus"] == 3

    results = await rollback_actions(provider, action_log, [entry.id])
    assert results[0]["success"] is True
    assert item_id not in provider.menu_items


class CommittedStatusProvider(FakeProvider):
    """Reads the queue through its own session at the moment of the remote write."""

    def __init__(self, engine):
        super().__init__()
        self.Session = sessionmaker(bind=engine)
        self.statuses_at_write = []

    async def update_media_item(self, media_id, data):
        session = self.Session()
        try:
            self.statuses_at_write.append([
                row.status for row in session.query(ActionQueueEntry).filter(
                    ActionQueueEntry.resource_id == str(media_id)
                )
            ])
        finally:
            session.close()
        return await super().update_media_item(media_id, data)


@pytest.fixture
def file_engine(tmp_path):
    # NullPool: every session gets its own connection, so only committed rows are visible
    engine = build_engine(f"sqlite:///{tmp_path / 'queue.db'}")
    init_db(bind=engine)
    yield engine
    engine.dispose()


async def test_processing_entry_is_committed_before_remote_write(file_engine):
    db = sessionmaker(bind=file_engine)()
    site = Website(name="Client Site", site_url="https://client.example.com",
                   wp_username="dashboard", wp_app_password="abcd efgh")
    db.add(site)
    db.commit()
    action_log = ActionLog(db, site.id, OPERATOR_ID)
    provider = CommittedStatusProvider(file_engine)
    results = await apply_changes(provider, action_log, [_change("c1", proposed="Bike")])

    assert results[0]["success"] is True
    assert provider.statuses_at_write == [[ActionStatus.PROCESSING]]
    assert db.get(ActionQueueEntry, results[0]["action_id"]).status == ActionStatus.COMPLETED
    db.close()
