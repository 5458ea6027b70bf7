"""Tool Input Schemas - strict pydantic models for every tool the model may call.

Each tool name maps to exactly one input model. The model's JSON schema is
what the LLM sees; the same model validates the LLM's arguments before any
dispatch. Arguments that fail validation never reach the WordPress site.
"""

from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, field_validator


class ToolName(str, Enum):
    """Every tool the agent can call - FIXED, cannot be extended by the LLM."""
    # Content (read)
    LIST_MEDIA = "list_media"
    GET_MEDIA_ITEM = "get_media_item"
    LIST_PAGES = "list_pages"
    GET_PAGE = "get_page"
    LIST_POSTS = "list_posts"
    GET_POST = "get_post"
    LIST_MENUS = "list_menus"
    GET_MENU_ITEMS = "get_menu_items"
    # Content (write - proposal only)
    UPDATE_MEDIA_ALT = "update_media_alt"
    UPDATE_PAGE = "update_page"
    UPDATE_POST = "update_post"
    TOGGLE_PLUGIN = "toggle_plugin"
    CREATE_MENU_ITEM = "create_menu_item"
    UPDATE_WC_PRODUCT = "update_wc_product"
    # Site health & diagnostics (read)
    GET_SITE_HEALTH = "get_site_health"
    LIST_PLUGINS = "list_plugins"
    LIST_THEMES = "list_themes"
    GET_DEBUG_LOG = "get_debug_log"
    GET_DB_HEALTH = "get_db_health"
    # WooCommerce (read)
    GET_WC_ORDERS = "get_wc_orders"
    GET_WC_ORDER = "get_wc_order"
    GET_WC_STATS = "get_wc_stats"
    LIST_WC_PRODUCTS = "list_wc_products"
    GET_WC_PRODUCT = "get_wc_product"
    # Users
    LIST_WP_USERS = "list_wp_users"
    CREATE_WP_USER = "create_wp_user"
    UPDATE_WP_USER = "update_wp_user"
    DELETE_WP_USER = "delete_wp_user"
    SEND_PASSWORD_RESET = "send_password_reset"
    # Direct actions
    UPDATE_PLUGIN = "update_plugin"
    UPDATE_THEME = "update_theme"
    UPDATE_CORE = "update_core"
    CLEAR_CACHE = "clear_cache"
    TOGGLE_MAINTENANCE = "toggle_maintenance"
    # Vision
    ANALYZE_IMAGE = "analyze_image"
    # Proposals
    PROPOSE_CHANGES = "propose_changes"


WP_ROLES = {
    "administrator", "editor", "author", "contributor", "subscriber",
    "shop_manager", "customer",
}


def _clean_optional(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip()
    return v or None


class NoInput(BaseModel):
    """Tools that take no arguments."""


class ResourceIdInput(BaseModel):
    id: int = Field(..., ge=1, description="The resource ID")


class MediaListInput(BaseModel):
    per_page: int = Field(50, ge=1, le=100, description="Number of items (max 100)")
    page: int = Field(1, ge=1, description="Page number")
    search: Optional[str] = Field(None, description="Search term to filter")


class ContentListInput(BaseModel):
    per_page: int = Field(100, ge=1, le=100)
    page: int = Field(1, ge=1)
    search: Optional[str] = None
    status: str = "publish"


class UpdateMediaAltInput(BaseModel):
    id: int = Field(..., ge=1, description="The media item ID")
    alt_text: str = Field(..., max_length=500, description="The new ALT text")


class UpdateContentInput(BaseModel):
    id: int = Field(..., ge=1)
    title: Optional[str] = None
    content: Optional[str] = None
    excerpt: Optional[str] = None
    slug: Optional[str] = None
    status: Optional[str] = None
    meta: Optional[Dict[str, Any]] = Field(
        None, description="Meta fields (e.g., _yoast_wpseo_metadesc)"
    )


class PluginToggleInput(BaseModel):
    plugin: str = Field(..., min_length=1, description='Plugin file path (e.g., "akismet/akismet.php")')
    activate: bool


class PluginInput(BaseModel):
    plugin: str = Field(
        ..., min_length=1,
        description='Plugin file path (e.g., "akismet/akismet.php"). Get this from list_plugins.',
    )


class ThemeInput(BaseModel):
    theme: str = Field(..., min_length=1, description="Theme slug (directory name)")


class MenuItemsInput(BaseModel):
    menu_id: int = Field(..., ge=1)


class CreateMenuItemInput(BaseModel):
    menu_id: int = Field(..., ge=1)
    title: str = Field(..., min_length=1)
    url: Optional[str] = None
    object_id: Optional[int] = Field(None, description="Page/post ID for content items")
    object: Optional[str] = Field(None, description="Object type: page, post, category")
    type: Optional[str] = Field(None, description="Item type: custom, post_type, taxonomy")
    parent: Optional[int] = Field(None, description="Parent menu item ID for sub-items")


class DebugLogInput(BaseModel):
    lines: int = Field(200, ge=1, le=2000, description="Number of recent log lines to fetch (max 2000)")


class MaintenanceInput(BaseModel):
    enable: bool = Field(..., description="true to enable, false to disable")


class WcOrdersInput(BaseModel):
    per_page: int = Field(10, ge=1, le=100, description="Orders per page (max 100)")
    page: int = Field(1, ge=1, description="Page number")
    status: Optional[str] = Field(
        None,
        description="Filter by status: processing, on-hold, completed, cancelled, refunded, failed, or any",
    )


class WcProductsInput(BaseModel):
    per_page: int = Field(20, ge=1, le=100, description="Products per page (max 100)")
    page: int = Field(1, ge=1, description="Page number")
    search: Optional[str] = Field(None, description="Search by product name")
    status: str = Field("publish", description="Filter by status: publish, draft, pending, private")


class UpdateWcProductInput(BaseModel):
    product_id: int = Field(..., ge=1, description="The product ID to update")
    name: Optional[str] = None
    regular_price: Optional[str] = Field(None, description="Regular price (e.g. '29.99')")
    sale_price: Optional[str] = Field(None, description="Sale price (empty string to remove sale)")
    description: Optional[str] = None
    short_description: Optional[str] = None
    sku: Optional[str] = None
    status: Optional[str] = None
    stock_quantity: Optional[int] = Field(None, ge=0)
    stock_status: Optional[str] = Field(None, description="instock, outofstock, onbackorder")
    image_id: Optional[int] = Field(None, description="Media library attachment ID for product image")


class CreateWpUserInput(BaseModel):
    username: str = Field(..., min_length=1, description="Login username")
    email: str = Field(..., min_length=3, description="Email address")
    role: str = Field("subscriber", description="WordPress role")
    password: Optional[str] = Field(None, description="Password (auto-generated if omitted)")
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = v.strip()
        if "@" not in v or v.startswith("@") or v.endswith("@"):
            raise ValueError("must be an email address")
        return v

    @field_validator("role")
    @classmethod
    def validate_role(cls, v: str) -> str:
        if v not in WP_ROLES:
            raise ValueError(f"unknown role '{v}'")
        return v


class UpdateWpUserInput(BaseModel):
    user_id: int = Field(..., ge=1, description="The user ID")
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    display_name: Optional[str] = None
    role: Optional[str] = None
    password: Optional[str] = None

    @field_validator("role")
    @classmethod
    def validate_role(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in WP_ROLES:
            raise ValueError(f"unknown role '{v}'")
        return v


class DeleteWpUserInput(BaseModel):
    user_id: int = Field(..., ge=1, description="User ID to delete")
    reassign: int = Field(1, ge=1, description="User ID to reassign content to (default: 1 = admin)")

    @field_validator("reassign")
    @classmethod
    def not_self(cls, v: int, info) -> int:
        if info.data.get("user_id") == v:
            raise ValueError("cannot reassign content to the user being deleted")
        return v


class UserIdInput(BaseModel):
    user_id: int = Field(..., ge=1, description="The user ID")


class AnalyzeImageInput(BaseModel):
    image_url: str = Field(..., description="Full URL to the image")
    context: Optional[str] = Field(None, description="Context about where this image appears")

    @field_validator("image_url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError("image_url must be an http(s) URL")
        return v

    @field_validator("context")
    @classmethod
    def strip_context(cls, v: Optional[str]) -> Optional[str]:
        return _clean_optional(v)


class ChangeItem(BaseModel):
    """One field-level change inside a proposal.

    current_value is the snapshot the model read; it becomes the action's
    before_state on apply and is what rollback writes back.
    """
    id: Optional[str] = None
    resource_type: str = Field(..., description="Type: media, page, post, plugin, menu_item, product")
    resource_id: str = Field(..., description="Resource ID")
    resource_title: str = Field("", description="Human-readable title")
    field: str = Field(..., min_length=1, description="Field being changed")
    current_value: str = Field("", description="Current value (empty if none)")
    proposed_value: str = Field(..., description="Proposed new value")

    @field_validator("resource_id", "current_value", "proposed_value", mode="before")
    @classmethod
    def coerce_to_string(cls, v: Any) -> Any:
        """Models often send numbers or booleans for these; the queue stores strings."""
        if v is None:
            return ""
        if isinstance(v, bool):
            return "true" if v else "false"
        if isinstance(v, (int, float)):
            return str(v)
        return v

    @field_validator("resource_type")
    @classmethod
    def normalize_type(cls, v: str) -> str:
        return v.strip().lower()


class ProposeChangesInput(BaseModel):
    description: str = Field(..., description="Summary of analysis and proposed changes")
    changes: List[ChangeItem]
