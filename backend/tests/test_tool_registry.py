import pytest

from ai.tool_schema import ToolName
from app.agent.tool_registry import (
    RiskTier,
    TOOL_REGISTRY,
    ToolDefinition,
    _build_index,
    get_tool,
    list_tools,
    tools_for_model,
)
from app.core.exceptions import ConfigurationError, ToolInputError


def test_every_tool_name_has_exactly_one_definition():
    names = [d.name for d in list_tools()]
    assert len(names) == len(set(names))
    assert set(names) == set(ToolName)


def test_risk_tiers():
    assert get_tool("get_media_item").risk_tier == RiskTier.READ
    assert get_tool("analyze_image").risk_tier == RiskTier.READ
    for name in ("update_media_alt", "update_page", "update_post", "toggle_plugin",
                 "create_menu_item", "update_wc_product", "propose_changes"):
        assert get_tool(name).risk_tier == RiskTier.PROPOSAL_GATED, name
    for name in ("update_plugin", "update_theme", "update_core", "clear_cache", "toggle_maintenance",
                 "create_wp_user", "update_wp_user", "delete_wp_user", "send_password_reset"):
        assert get_tool(name).risk_tier == RiskTier.DIRECT_EXECUTE, name


def test_unknown_tool_is_none():
    assert get_tool("drop_database") is None


def test_model_tools_are_flat_object_schemas():
    tools = tools_for_model()
    assert len(tools) == len(TOOL_REGISTRY)
    for tool in tools:
        params = tool["function"]["parameters"]
        assert tool["type"] == "function"
        assert params["type"] == "object"
        assert "$defs" not in params
        assert "title" not in params


def test_property_named_title_survives_schema_cleanup():
    schema = get_tool("create_menu_item").input_schema
    assert "title" in schema["properties"]
    assert "title" in schema["required"]


def test_propose_changes_schema_inlines_change_items():
    schema = get_tool("propose_changes").input_schema
    items = schema["properties"]["changes"]["items"]
    assert "$ref" not in items
    assert {"resource_type", "resource_id", "field", "proposed_value"} <= set(items["required"])


def test_validate_input_rejects_bad_arguments():
    definition = get_tool("get_media_item")
    with pytest.raises(ToolInputError) as exc:
        definition.validate_input({"id": 0})
    assert "get_media_item" in str(exc.value)

    with pytest.raises(ToolInputError):
        definition.validate_input(None)

    with pytest.raises(ToolInputError):
        definition.validate_input(["not", "an", "object"])


def test_validate_input_coerces_change_values_to_strings():
    params = get_tool("propose_changes").validate_input({
        "description": "Toggle",
        "changes": [{
            "resource_type": "Plugin",
            "resource_id": 12,
            "field": "active",
            "current_value": False,
            "proposed_value": True,
        }],
    })
    change = params.changes[0]
    assert change.resource_type == "plugin"
    assert change.resource_id == "12"
    assert change.current_value == "false"
    assert change.proposed_value == "true"


def test_duplicate_definition_is_configuration_error():
    duplicate = TOOL_REGISTRY + (TOOL_REGISTRY[0],)
    with pytest.raises(ConfigurationError, match="Duplicate"):
        _build_index(duplicate)


def test_missing_definition_is_configuration_error():
    with pytest.raises(ConfigurationError, match="without a definition"):
        _build_index(TOOL_REGISTRY[1:])


def test_definitions_are_immutable():
    definition = get_tool("list_media")
    assert isinstance(definition, ToolDefinition)
    with pytest.raises(Exception):
        definition.risk_tier = RiskTier.DIRECT_EXECUTE
