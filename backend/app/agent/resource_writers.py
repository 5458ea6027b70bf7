"""
Route one field-level write to the right capability provider call.

Used by both pipelines:
- apply:    write_field(provider, type, id, field, proposed_value)
- rollback: revert_entry(provider, entry) writes before_state back
            (menu items are undone by deleting the item apply created)

Supported resource types:
- media      alt_text | title | caption | description
- page/post  meta_description -> Yoast meta, anything else as-is
- plugin     field "active", value "true" / "false"
- product    any WooCommerce product field
- menu_item  resource_id is the menu id, value is the new item title
"""
import logging
from typing import Any, Dict

from app.models.action_queue import ActionQueueEntry
from app.services.capability_provider import ToolCapabilityProvider

logger = logging.getLogger(__name__)

MEDIA_FIELDS = ("alt_text", "title", "caption", "description")
YOAST_META_DESCRIPTION = "_yoast_wpseo_metadesc"


class UnsupportedChangeError(ValueError):
    """The change targets a resource type or field no writer handles."""


def _as_id(resource_id: str) -> int:
    try:
        return int(resource_id)
    except (TypeError, ValueError):
        raise UnsupportedChangeError(f"Resource id must be numeric, got '{resource_id}'")


def _content_data(field: str, value: str) -> Dict[str, Any]:
    if field == "meta_description":
        return {"meta": {YOAST_META_DESCRIPTION: value}}
    return {field: value}


async def _write_media(provider, resource_id, field, value):
    if field not in MEDIA_FIELDS:
        raise UnsupportedChangeError(f"Unsupported media field '{field}'")
    await provider.update_media_item(_as_id(resource_id), {field: value})
    return {}


async def _write_page(provider, resource_id, field, value):
    await provider.update_page(_as_id(resource_id), _content_data(field, value))
    return {}


async def _write_post(provider, resource_id, field, value):
    await provider.update_post(_as_id(resource_id), _content_data(field, value))
    return {}


async def _write_plugin(provider, resource_id, field, value):
    if field != "active":
        raise UnsupportedChangeError(f"Unsupported plugin field '{field}'")
    normalized = str(value).strip().lower()
    if normalized not in ("true", "false"):
        raise UnsupportedChangeError(f"Plugin 'active' must be true or false, got '{value}'")
    await provider.toggle_plugin(resource_id, normalized == "true")
    return {}


async def _write_product(provider, resource_id, field, value):
    await provider.update_wc_product(_as_id(resource_id), {field: value})
    return {}


async def _create_menu_item(provider, resource_id, field, value):
    created = await provider.create_menu_item({"title": value, "menus": _as_id(resource_id)})
    return {"created_item_id": (created or {}).get("id")}


WRITERS = {
    "media": _write_media,
    "page": _write_page,
    "post": _write_post,
    "plugin": _write_plugin,
    "product": _write_product,
    "menu_item": _create_menu_item,
}


async def write_field(
    provider: ToolCapabilityProvider,
    resource_type: str,
    resource_id: str,
    field: str,
    value: str,
) -> Dict[str, Any]:
    """Perform the write. Returns extra after_state data (e.g. a created menu item id)."""
    writer = WRITERS.get(resource_type)
    if writer is None:
        raise UnsupportedChangeError(f"Unsupported resource type '{resource_type}'")
    return await writer(provider, resource_id, field, value)


async def revert_entry(provider: ToolCapabilityProvider, entry: ActionQueueEntry) -> None:
    """Undo a completed entry using its before_state."""
    before = entry.before_state or {}
    resource_type = before.get("resource_type", entry.resource_type)
    resource_id = before.get("resource_id", entry.resource_id)

    if resource_type == "menu_item":
        item_id = (entry.after_state or {}).get("created_item_id")
        if not item_id:
            raise UnsupportedChangeError("Menu item id was not recorded; cannot remove it")
        await provider.delete_menu_item(_as_id(item_id))
        return

    await write_field(provider, resource_type, resource_id, before.get("field"), before.get("value", ""))
