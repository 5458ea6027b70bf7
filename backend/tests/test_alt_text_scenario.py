"""End to end: "add alt text to image 42" through the agent, apply and rollback."""
import pytest
from sqlalchemy import event

from app.agent.agent_loop import AgentLoop
from app.agent.apply import apply_changes
from app.agent.rollback import rollback_actions
from app.agent.tool_executor import ToolExecutor
from app.models.action_queue import ActionQueueEntry, ActionStatus
from app.schemas.ai_command import ChangeToApply

from conftest import ALT_TEXT, ScriptedModelClient, final, tool_call, tool_use

pytestmark = pytest.mark.anyio


@pytest.fixture
def status_changes():
    seen = []

    def record(target, value, oldvalue, initiator):
        seen.append(value)

    event.listen(ActionQueueEntry.status, "set", record)
    yield seen
    event.remove(ActionQueueEntry.status, "set", record)


async def test_add_alt_text_to_image_42(provider, action_log, db, status_changes):
    client = ScriptedModelClient([
        tool_use(tool_call("get_media_item", {"id": 42})),
        tool_use(tool_call("analyze_image", {"image_url": "https://example.com/bike.jpg"})),
        tool_use(tool_call("propose_changes", {
            "description": "Image 42 has no ALT text.",
            "changes": [{
                "resource_type": "media",
                "resource_id": "42",
                "resource_title": "Bike",
                "field": "alt_text",
                "current_value": "",
                "proposed_value": ALT_TEXT,
            }],
        })),
        final("I proposed ALT text for image 42."),
    ])
    executor = ToolExecutor(provider, client, action_log=action_log)
    result = await AgentLoop(client, executor).run("add alt text to image 42")

    # Nothing written during the run
    assert result.type == "message"
    assert provider.writes == []
    assert db.query(ActionQueueEntry).count() == 0

    change = result.proposal["changes"][0]
    assert change["proposed_value"] == ALT_TEXT

    applied = await apply_changes(provider, action_log, [ChangeToApply(**change, selected=True)])
    assert applied[0]["success"] is True
    assert provider.media[42]["alt_text"] == ALT_TEXT

    entry = db.get(ActionQueueEntry, applied[0]["action_id"])
    assert entry.before_state["value"] == ""
    assert entry.after_state["value"] == ALT_TEXT
    assert status_changes == [ActionStatus.PENDING, ActionStatus.PROCESSING, ActionStatus.COMPLETED]

    rolled = await rollback_actions(provider, action_log, [entry.id])
    assert rolled[0]["success"] is True
    assert provider.media[42]["alt_text"] == ""
    assert entry.status == ActionStatus.ROLLED_BACK
    assert status_changes[-1] == ActionStatus.ROLLED_BACK
