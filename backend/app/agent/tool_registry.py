"""
Tool Registry - static catalog of every tool the agent may call.

Each ToolDefinition carries:
- name (unique, one per ToolName)
- description shown to the model
- input_model: pydantic model used both to render the JSON schema the model
  sees and to validate the model's arguments before dispatch
- risk_tier: READ | PROPOSAL_GATED | DIRECT_EXECUTE

The registry is built and checked at import time. A duplicate name, a missing
tool, or a schema that does not render is a ConfigurationError at startup,
never at request time.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Type

from pydantic import BaseModel, ValidationError

from ai.tool_schema import (
    ToolName,
    NoInput,
    ResourceIdInput,
    MediaListInput,
    ContentListInput,
    UpdateMediaAltInput,
    UpdateContentInput,
    PluginToggleInput,
    PluginInput,
    ThemeInput,
    MenuItemsInput,
    CreateMenuItemInput,
    DebugLogInput,
    MaintenanceInput,
    WcOrdersInput,
    WcProductsInput,
    UpdateWcProductInput,
    CreateWpUserInput,
    UpdateWpUserInput,
    DeleteWpUserInput,
    UserIdInput,
    AnalyzeImageInput,
    ProposeChangesInput,
)
from app.core.exceptions import ConfigurationError, ToolInputError

logger = logging.getLogger(__name__)


class RiskTier(str, Enum):
    READ = "read"
    PROPOSAL_GATED = "proposal_gated"
    DIRECT_EXECUTE = "direct_execute"


def _inline_refs(schema: Dict[str, Any]) -> Dict[str, Any]:
    """Resolve $ref/$defs and drop titles; tool-calling APIs want flat schemas."""
    defs = schema.get("$defs", {})

    def resolve(node, property_map=False):
        # property_map: keys are field names (a field may be called "title"), values are schemas
        if isinstance(node, dict):
            if property_map:
                return {k: resolve(v) for k, v in node.items()}
            if "$ref" in node:
                ref_name = node["$ref"].rsplit("/", 1)[-1]
                if ref_name not in defs:
                    raise ConfigurationError(f"Unresolvable schema reference: {node['$ref']}")
                return resolve(defs[ref_name])
            return {
                k: resolve(v, property_map=(k == "properties"))
                for k, v in node.items()
                if k not in ("$defs", "title")
            }
        if isinstance(node, list):
            return [resolve(item) for item in node]
        return node

    return resolve(schema)


@dataclass(frozen=True)
class ToolDefinition:
    name: ToolName
    description: str
    input_model: Type[BaseModel]
    risk_tier: RiskTier

    @property
    def input_schema(self) -> Dict[str, Any]:
        schema = _inline_refs(self.input_model.model_json_schema())
        schema.setdefault("properties", {})
        schema.setdefault("required", [])
        return schema

    def validate_input(self, arguments: Optional[Dict[str, Any]]) -> BaseModel:
        """Validate raw tool-call arguments. Raises ToolInputError."""
        if arguments is None:
            raise ToolInputError(self.name.value, "arguments were not valid JSON")
        if not isinstance(arguments, dict):
            raise ToolInputError(self.name.value, "arguments must be a JSON object")
        try:
            return self.input_model.model_validate(arguments)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'input'}: {err['msg']}"
                for err in e.errors()
            )
            raise ToolInputError(self.name.value, problems) from e

    def to_model_tool(self) -> Dict[str, Any]:
        """Function-tool format accepted by Groq chat completions."""
        return {
            "type": "function",
            "function": {
                "name": self.name.value,
                "description": self.description,
                "parameters": self.input_schema,
            },
        }


READ = RiskTier.READ
GATED = RiskTier.PROPOSAL_GATED
DIRECT = RiskTier.DIRECT_EXECUTE


TOOL_REGISTRY = (
    # ─── Content (read) ──────────────────────────────────────────────
    ToolDefinition(
        ToolName.LIST_MEDIA,
        "List media items (images, files) from the WordPress media library. Returns id, title, "
        "alt_text, source_url, dimensions, and mime_type. Use to find images that need ALT text.",
        MediaListInput, READ,
    ),
    ToolDefinition(
        ToolName.GET_MEDIA_ITEM,
        "Get details of a single media item by ID, including full URL for image analysis.",
        ResourceIdInput, READ,
    ),
    ToolDefinition(
        ToolName.LIST_PAGES,
        "List pages on the WordPress site. Returns id, title, slug, status, excerpt.",
        ContentListInput, READ,
    ),
    ToolDefinition(
        ToolName.GET_PAGE,
        "Get full details of a single page including content, meta, and Yoast SEO data.",
        ResourceIdInput, READ,
    ),
    ToolDefinition(
        ToolName.LIST_POSTS,
        "List blog posts. Returns id, title, slug, status, excerpt.",
        ContentListInput, READ,
    ),
    ToolDefinition(
        ToolName.GET_POST,
        "Get full details of a single blog post including content, meta, and SEO data.",
        ResourceIdInput, READ,
    ),
    ToolDefinition(ToolName.LIST_MENUS, "List all navigation menus.", NoInput, READ),
    ToolDefinition(
        ToolName.GET_MENU_ITEMS, "Get all items in a specific navigation menu.", MenuItemsInput, READ,
    ),
    # ─── Content (write - proposal only) ─────────────────────────────
    ToolDefinition(
        ToolName.UPDATE_MEDIA_ALT,
        "Update the ALT text of a media item. Not applied until the operator approves it via propose_changes.",
        UpdateMediaAltInput, GATED,
    ),
    ToolDefinition(
        ToolName.UPDATE_PAGE,
        "Update a page (title, content, excerpt, slug, status, or meta). Not applied until approved via propose_changes.",
        UpdateContentInput, GATED,
    ),
    ToolDefinition(
        ToolName.UPDATE_POST,
        "Update a blog post (title, content, excerpt, slug, status, or meta). Not applied until approved via propose_changes.",
        UpdateContentInput, GATED,
    ),
    ToolDefinition(
        ToolName.TOGGLE_PLUGIN,
        "Activate or deactivate a WordPress plugin. Not applied until approved via propose_changes.",
        PluginToggleInput, GATED,
    ),
    ToolDefinition(
        ToolName.CREATE_MENU_ITEM,
        "Add a new item to a navigation menu. Not applied until approved via propose_changes.",
        CreateMenuItemInput, GATED,
    ),
    ToolDefinition(
        ToolName.UPDATE_WC_PRODUCT,
        "Update a WooCommerce product (name, prices, descriptions, SKU, stock, status, image). "
        "Not applied until approved via propose_changes.",
        UpdateWcProductInput, GATED,
    ),
    # ─── Site health & diagnostics (read) ────────────────────────────
    ToolDefinition(
        ToolName.GET_SITE_HEALTH,
        "Get WordPress site health: versions, theme, disk usage, configuration.",
        NoInput, READ,
    ),
    ToolDefinition(
        ToolName.LIST_PLUGINS,
        "List all installed plugins with activation status and update availability.",
        NoInput, READ,
    ),
    ToolDefinition(
        ToolName.LIST_THEMES,
        "List all installed themes with activation status, version, and update availability.",
        NoInput, READ,
    ),
    ToolDefinition(
        ToolName.GET_DEBUG_LOG,
        "Read the WordPress debug.log file. Returns parsed entries with severity levels. Use to diagnose site issues.",
        DebugLogInput, READ,
    ),
    ToolDefinition(
        ToolName.GET_DB_HEALTH,
        "Get WordPress database health: revisions count, transients, autoload size, spam comments.",
        NoInput, READ,
    ),
    # ─── WooCommerce (read) ──────────────────────────────────────────
    ToolDefinition(
        ToolName.GET_WC_ORDERS,
        "List WooCommerce orders. Returns order ID, status, total, customer, items. Requires WooCommerce.",
        WcOrdersInput, READ,
    ),
    ToolDefinition(
        ToolName.GET_WC_ORDER,
        "Get full details of a single WooCommerce order including items, billing, shipping, and notes.",
        ResourceIdInput, READ,
    ),
    ToolDefinition(
        ToolName.GET_WC_STATS,
        "Get WooCommerce store stats: today/month orders and revenue, orders by status, low stock products.",
        NoInput, READ,
    ),
    ToolDefinition(
        ToolName.LIST_WC_PRODUCTS,
        "List WooCommerce products with name, price, SKU, stock, and image.",
        WcProductsInput, READ,
    ),
    ToolDefinition(
        ToolName.GET_WC_PRODUCT,
        "Get full details of a single WooCommerce product including prices, stock, images, categories.",
        ResourceIdInput, READ,
    ),
    # ─── Users ───────────────────────────────────────────────────────
    ToolDefinition(
        ToolName.LIST_WP_USERS,
        "List all WordPress users with their roles, emails, and registration dates.",
        NoInput, READ,
    ),
    ToolDefinition(
        ToolName.CREATE_WP_USER,
        "Create a new WordPress user. Executes immediately. Generates a secure password if not provided.",
        CreateWpUserInput, DIRECT,
    ),
    ToolDefinition(
        ToolName.UPDATE_WP_USER,
        "Update an existing WordPress user's email, name, role, or password. Executes immediately.",
        UpdateWpUserInput, DIRECT,
    ),
    ToolDefinition(
        ToolName.DELETE_WP_USER,
        "Delete a WordPress user and reassign their content to another user. Executes immediately.",
        DeleteWpUserInput, DIRECT,
    ),
    ToolDefinition(
        ToolName.SEND_PASSWORD_RESET,
        "Send a WordPress password reset email to a user. Executes immediately.",
        UserIdInput, DIRECT,
    ),
    # ─── Direct actions ──────────────────────────────────────────────
    ToolDefinition(
        ToolName.UPDATE_PLUGIN,
        "Update a plugin to its latest version. Executes immediately. Use list_plugins first.",
        PluginInput, DIRECT,
    ),
    ToolDefinition(
        ToolName.UPDATE_THEME,
        "Update a theme to its latest version. Executes immediately. Use list_themes first.",
        ThemeInput, DIRECT,
    ),
    ToolDefinition(
        ToolName.UPDATE_CORE,
        "Update WordPress core to the latest version. Executes immediately. Use get_site_health first.",
        NoInput, DIRECT,
    ),
    ToolDefinition(
        ToolName.CLEAR_CACHE,
        "Clear all WordPress caches: object cache, page cache plugins, and transients. Executes immediately.",
        NoInput, DIRECT,
    ),
    ToolDefinition(
        ToolName.TOGGLE_MAINTENANCE,
        "Enable or disable WordPress maintenance mode. Executes immediately.",
        MaintenanceInput, DIRECT,
    ),
    # ─── Vision ──────────────────────────────────────────────────────
    ToolDefinition(
        ToolName.ANALYZE_IMAGE,
        "Look at an image and suggest descriptive ALT text. Has no effect on the site.",
        AnalyzeImageInput, READ,
    ),
    # ─── Proposals ───────────────────────────────────────────────────
    ToolDefinition(
        ToolName.PROPOSE_CHANGES,
        "Propose content changes to the operator for review. The operator sees a table of changes and "
        "selects which ones to apply. ALWAYS use this for content changes (pages, posts, media ALT text, "
        "menus, plugin activation, products). Only the last proposal of a command is shown.",
        ProposeChangesInput, GATED,
    ),
)


def _build_index(definitions) -> Dict[ToolName, ToolDefinition]:
    index: Dict[ToolName, ToolDefinition] = {}
    for definition in definitions:
        if definition.name in index:
            raise ConfigurationError(f"Duplicate tool definition: {definition.name.value}")
        try:
            schema = definition.input_schema
        except Exception as e:
            raise ConfigurationError(f"Tool {definition.name.value} has a malformed schema: {e}") from e
        if schema.get("type") != "object":
            raise ConfigurationError(f"Tool {definition.name.value} schema must be an object")
        index[definition.name] = definition

    missing = set(ToolName) - set(index)
    if missing:
        raise ConfigurationError(
            f"Tools without a definition: {', '.join(sorted(m.value for m in missing))}"
        )
    return index


_INDEX = _build_index(TOOL_REGISTRY)


def list_tools() -> List[ToolDefinition]:
    return list(TOOL_REGISTRY)


def get_tool(name: str) -> Optional[ToolDefinition]:
    try:
        return _INDEX[ToolName(name)]
    except ValueError:
        return None


def tools_for_model() -> List[Dict[str, Any]]:
    return [definition.to_model_tool() for definition in TOOL_REGISTRY]
