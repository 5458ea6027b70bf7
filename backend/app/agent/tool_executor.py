"""
Execute ONE validated tool call on behalf of the agent loop.

SAFETY MODEL:
- This is the ONLY place where a model's tool choice becomes a real-world effect
- The model's tool choices are not trusted: the risk tier decides what happens,
  not the prompt

RISK TIERS:
- READ: call the capability provider, return its data (size-capped)
- PROPOSAL_GATED: never touch the provider. Echo the input back as
  {"noted": True, ...} so the model can build a proposal. Nothing is written
  until the operator applies it.
- DIRECT_EXECUTE: call the provider immediately. When an action log is bound,
  the call is recorded in the action queue (before_state=None, so it can
  never be rolled back).

The dispatch table must cover every ToolName; a gap is a ConfigurationError
when the executor is constructed, never a runtime fallthrough.
"""
import json
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from pydantic import BaseModel

from ai.groq_client import ModelClient
from ai.tool_schema import ToolName
from app.agent.tool_registry import RiskTier, ToolDefinition, get_tool
from app.core.audit import AuditLog
from app.core.config import settings
from app.core.exceptions import ConfigurationError, ToolInputError
from app.services.action_queue_service import ActionLog
from app.services.capability_provider import ToolCapabilityProvider

logger = logging.getLogger(__name__)

Handler = Callable[[BaseModel], Awaitable[Any]]


def cap_result(result: Any, max_chars: int) -> Any:
    """Return result unchanged, or a truncated text form if its JSON is longer than max_chars."""
    text = json.dumps(result, default=str)
    if len(text) <= max_chars:
        return result
    logger.info(f"Tool result truncated from {len(text)} to {max_chars} chars")
    return {"truncated": True, "original_chars": len(text), "content": text[:max_chars]}


class ToolExecutor:
    def __init__(
        self,
        provider: ToolCapabilityProvider,
        model_client: ModelClient,
        action_log: Optional[ActionLog] = None,
        max_result_chars: int = None,
    ):
        self.provider = provider
        self.model_client = model_client
        self.action_log = action_log
        self.max_result_chars = max_result_chars or settings.AI_TOOL_RESULT_MAX_CHARS
        self._dispatch = self._build_dispatch()
        self._check_dispatch()

    # ─── Dispatch table ──────────────────────────────────────────────

    def _build_dispatch(self) -> Dict[ToolName, Handler]:
        p = self.provider
        return {
            # Content (read)
            ToolName.LIST_MEDIA: lambda i: p.get_media(i.per_page, i.page, i.search),
            ToolName.GET_MEDIA_ITEM: lambda i: p.get_media_item(i.id),
            ToolName.LIST_PAGES: lambda i: p.get_pages(i.per_page, i.page, i.search),
            ToolName.GET_PAGE: lambda i: p.get_page(i.id),
            ToolName.LIST_POSTS: lambda i: p.get_posts(i.per_page, i.page, i.search),
            ToolName.GET_POST: lambda i: p.get_post(i.id),
            ToolName.LIST_MENUS: lambda i: p.get_menus(),
            ToolName.GET_MENU_ITEMS: lambda i: p.get_menu_items(i.menu_id),
            # Content (write - proposal only)
            ToolName.UPDATE_MEDIA_ALT: self._note,
            ToolName.UPDATE_PAGE: self._note,
            ToolName.UPDATE_POST: self._note,
            ToolName.TOGGLE_PLUGIN: self._note,
            ToolName.CREATE_MENU_ITEM: self._note,
            ToolName.UPDATE_WC_PRODUCT: self._note,
            # Site health & diagnostics
            ToolName.GET_SITE_HEALTH: lambda i: p.get_site_health(),
            ToolName.LIST_PLUGINS: lambda i: p.get_plugins(),
            ToolName.LIST_THEMES: lambda i: p.get_themes(),
            ToolName.GET_DEBUG_LOG: lambda i: p.get_debug_log(i.lines),
            ToolName.GET_DB_HEALTH: lambda i: p.get_db_health(),
            # WooCommerce
            ToolName.GET_WC_ORDERS: lambda i: p.get_wc_orders(i.per_page, i.page, i.status),
            ToolName.GET_WC_ORDER: lambda i: p.get_wc_order(i.id),
            ToolName.GET_WC_STATS: lambda i: p.get_wc_stats(),
            ToolName.LIST_WC_PRODUCTS: lambda i: p.get_wc_products(i.per_page, i.page, i.search, i.status),
            ToolName.GET_WC_PRODUCT: lambda i: p.get_wc_product(i.id),
            # Users
            ToolName.LIST_WP_USERS: lambda i: p.get_wp_users(),
            ToolName.CREATE_WP_USER: lambda i: p.create_wp_user(i.model_dump(exclude_none=True)),
            ToolName.UPDATE_WP_USER: lambda i: p.update_wp_user(
                i.user_id, i.model_dump(exclude_none=True, exclude={"user_id"})
            ),
            ToolName.DELETE_WP_USER: lambda i: p.delete_wp_user(i.user_id, i.reassign),
            ToolName.SEND_PASSWORD_RESET: lambda i: p.send_password_reset(i.user_id),
            # Direct actions
            ToolName.UPDATE_PLUGIN: lambda i: p.update_plugin(i.plugin),
            ToolName.UPDATE_THEME: lambda i: p.update_theme(i.theme),
            ToolName.UPDATE_CORE: lambda i: p.update_core(),
            ToolName.CLEAR_CACHE: lambda i: p.clear_cache(),
            ToolName.TOGGLE_MAINTENANCE: lambda i: p.toggle_maintenance(i.enable),
            # Vision
            ToolName.ANALYZE_IMAGE: self._analyze_image,
            # Proposals
            ToolName.PROPOSE_CHANGES: self._acknowledge_proposal,
        }

    def _check_dispatch(self) -> None:
        missing = set(ToolName) - set(self._dispatch)
        if missing:
            raise ConfigurationError(
                f"No executor handler for: {', '.join(sorted(m.value for m in missing))}"
            )

        # A gated tool wired to anything but a no-op handler would write during a run
        safe = (self._note, self._acknowledge_proposal)
        for name, handler in self._dispatch.items():
            definition = get_tool(name.value)
            if definition.risk_tier == RiskTier.PROPOSAL_GATED and handler not in safe:
                raise ConfigurationError(f"Proposal-gated tool {name.value} is wired to a provider call")

    # ─── Non-provider handlers ───────────────────────────────────────

    async def _note(self, params: BaseModel) -> Dict[str, Any]:
        return {"noted": True, **params.model_dump(exclude_none=True)}

    async def _acknowledge_proposal(self, params: BaseModel) -> Dict[str, Any]:
        return {"acknowledged": True, "changes_count": len(params.changes)}

    async def _analyze_image(self, params: BaseModel) -> Dict[str, Any]:
        alt_text = await self.model_client.describe_image(params.image_url, params.context)
        return {"image_url": params.image_url, "suggested_alt_text": alt_text}

    # ─── Entry point ─────────────────────────────────────────────────

    async def execute(self, name: str, arguments: Optional[Dict[str, Any]]) -> Any:
        """
        Validate and run one tool call.

        Raises:
            ToolInputError: unknown tool or invalid arguments
            RemoteSystemError: the WordPress site rejected a read or direct action
        The agent loop turns any exception into an {"error": ...} tool result.
        """
        definition = get_tool(name)
        if definition is None:
            raise ToolInputError(name, "unknown tool")

        params = definition.validate_input(arguments)
        handler = self._dispatch[definition.name]

        if definition.risk_tier == RiskTier.DIRECT_EXECUTE:
            return await self._execute_direct(definition, params, handler)

        result = await handler(params)
        if definition.risk_tier == RiskTier.READ:
            return cap_result(result, self.max_result_chars)
        return result

    async def _execute_direct(self, definition: ToolDefinition, params: BaseModel, handler: Handler) -> Any:
        tool = definition.name.value
        logger.info(f"Direct action {tool} executing")

        if self.action_log is None:
            return cap_result(await handler(params), self.max_result_chars)

        # Passwords are sent to WordPress but never stored in the queue
        payload = params.model_dump(exclude_none=True, exclude={"password"})
        entry = self.action_log.enqueue(tool, payload)
        try:
            result = await handler(params)
        except Exception as e:
            # Never leave the entry in processing; the loop still sees the error
            self.action_log.fail(entry, str(e))
            AuditLog.log_action(
                "direct_execute", self.action_log.website_id, self.action_log.operator_id,
                entry.id, False, changes={"tool": tool}, error=str(e),
            )
            raise

        capped = cap_result(result, self.max_result_chars)
        self.action_log.complete(entry, after_state={"result": capped})
        AuditLog.log_action(
            "direct_execute", self.action_log.website_id, self.action_log.operator_id,
            entry.id, True, changes={"tool": tool},
        )
        return capped
