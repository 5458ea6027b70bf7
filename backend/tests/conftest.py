"""
Shared pytest fixtures for the agent, pipelines and API tests.

Provides:
- In-memory SQLite session with all tables
- A managed website row + bound ActionLog
- FakeProvider: in-memory WordPress that records every call
- ScriptedModelClient: replays canned model responses
"""
import itertools
import json
import os

os.environ.setdefault("DASHBOARD_SECRET", "test-dashboard-secret")

import pytest
from sqlalchemy.orm import sessionmaker

from ai.groq_client import ModelClient
from ai.transcript import ModelResponse, StopReason, ToolCall
from app.core.exceptions import RemoteSystemError
from app.db.init_db import init_db
from app.db.session import build_engine
from app.models.website import Website
from app.services.action_queue_service import ActionLog
from app.services.capability_provider import ToolCapabilityProvider

OPERATOR_ID = "op-1"
ALT_TEXT = "A red bicycle leaning against a brick wall."


# ═══════════════════════════════════════════════════════
# FAKES
# ═══════════════════════════════════════════════════════

class FakeProvider(ToolCapabilityProvider):
    """In-memory WordPress site. `calls` holds (method, args) in call order."""

    WRITE_METHODS = {
        "update_media_item", "update_page", "update_post", "create_menu_item", "delete_menu_item",
        "toggle_plugin", "update_plugin", "update_theme", "update_core", "clear_cache",
        "toggle_maintenance", "update_wc_product", "create_wp_user", "update_wp_user",
        "delete_wp_user", "send_password_reset",
    }

    def __init__(self):
        self.media = {
            42: {"id": 42, "title": "Bike", "alt_text": "", "source_url": "https://example.com/bike.jpg"},
            43: {"id": 43, "title": "Shop", "alt_text": "old", "source_url": "https://example.com/shop.jpg"},
        }
        self.pages = {7: {"id": 7, "title": "About", "content": "Hello", "meta": {}}}
        self.posts = {9: {"id": 9, "title": "News", "content": "", "meta": {}}}
        self.plugins = {"akismet/akismet.php": {"plugin": "akismet/akismet.php", "active": False}}
        self.products = {5: {"id": 5, "name": "Mug", "regular_price": "10.00"}}
        self.menu_items = {}
        self._menu_ids = itertools.count(100)
        self.calls = []
        # method name or (method, first arg) -> error message
        self.failures = {}

    @property
    def writes(self):
        return [c for c in self.calls if c[0] in self.WRITE_METHODS]

    def _record(self, method, *args):
        self.calls.append((method, args))
        keys = [method]
        # dict payloads (create_menu_item, create_wp_user) only match by method name
        if args and isinstance(args[0], (str, int)):
            keys.insert(0, (method, args[0]))
        for key in keys:
            if key in self.failures:
                raise RemoteSystemError(self.failures[key], status_code=500)

    # Content
    async def get_media(self, per_page=100, page=1, search=None):
        self._record("get_media", per_page, page, search)
        return list(self.media.values())

    async def get_media_item(self, media_id):
        self._record("get_media_item", media_id)
        if media_id not in self.media:
            raise RemoteSystemError("WP API Error (404): Invalid post ID.", status_code=404)
        return dict(self.media[media_id])

    async def update_media_item(self, media_id, data):
        self._record("update_media_item", media_id, data)
        self.media.setdefault(media_id, {"id": media_id}).update(data)
        return dict(self.media[media_id])

    async def get_pages(self, per_page=100, page=1, search=None, status="publish"):
        self._record("get_pages", per_page, page, search)
        return list(self.pages.values())

    async def get_page(self, page_id):
        self._record("get_page", page_id)
        return dict(self.pages[page_id])

    async def update_page(self, page_id, data):
        self._record("update_page", page_id, data)
        page = self.pages.setdefault(page_id, {"id": page_id, "meta": {}})
        meta = data.get("meta")
        page.update({k: v for k, v in data.items() if k != "meta"})
        if meta:
            page["meta"].update(meta)
        return dict(page)

    async def get_posts(self, per_page=100, page=1, search=None, status="publish"):
        self._record("get_posts", per_page, page, search)
        return list(self.posts.values())

    async def get_post(self, post_id):
        self._record("get_post", post_id)
        return dict(self.posts[post_id])

    async def update_post(self, post_id, data):
        self._record("update_post", post_id, data)
        self.posts.setdefault(post_id, {"id": post_id, "meta": {}}).update(data)
        return dict(self.posts[post_id])

    async def get_menus(self):
        self._record("get_menus")
        return [{"id": 3, "name": "Main"}]

    async def get_menu_items(self, menu_id):
        self._record("get_menu_items", menu_id)
        return [item for item in self.menu_items.values() if item["menus"] == menu_id]

    async def create_menu_item(self, data):
        self._record("create_menu_item", data)
        item = {"id": next(self._menu_ids), **data}
        self.menu_items[item["id"]] = item
        return item

    async def delete_menu_item(self, item_id):
        self._record("delete_menu_item", item_id)
        self.menu_items.pop(item_id, None)
        return {"deleted": True}

    # Connector
    async def get_site_health(self):
        self._record("get_site_health")
        return {"wp_version": "6.5", "php_version": "8.2"}

    async def get_plugins(self):
        self._record("get_plugins")
        return list(self.plugins.values())

    async def toggle_plugin(self, plugin, activate):
        self._record("toggle_plugin", plugin, activate)
        self.plugins.setdefault(plugin, {"plugin": plugin})["active"] = activate
        return {"success": True}

    async def update_plugin(self, plugin):
        self._record("update_plugin", plugin)
        return {"success": True, "plugin": plugin}

    async def get_themes(self):
        self._record("get_themes")
        return []

    async def update_theme(self, theme):
        self._record("update_theme", theme)
        return {"success": True}

    async def update_core(self):
        self._record("update_core")
        return {"success": True}

    async def get_debug_log(self, lines=200):
        self._record("get_debug_log", lines)
        return {"entries": ["PHP Notice: x"] * lines}

    async def get_db_health(self):
        self._record("get_db_health")
        return {"revisions": 10}

    async def clear_cache(self):
        self._record("clear_cache")
        return {"success": True, "cleared": ["object_cache"]}

    async def toggle_maintenance(self, enable):
        self._record("toggle_maintenance", enable)
        return {"success": True, "maintenance": enable}

    # WooCommerce
    async def get_wc_orders(self, per_page=10, page=1, status=None):
        self._record("get_wc_orders", per_page, page, status)
        return {"orders": []}

    async def get_wc_order(self, order_id):
        self._record("get_wc_order", order_id)
        return {"id": order_id}

    async def get_wc_stats(self):
        self._record("get_wc_stats")
        return {"orders_today": 0}

    async def get_wc_products(self, per_page=20, page=1, search=None, status="publish"):
        self._record("get_wc_products", per_page, page, search, status)
        return {"products": list(self.products.values())}

    async def get_wc_product(self, product_id):
        self._record("get_wc_product", product_id)
        return dict(self.products[product_id])

    async def update_wc_product(self, product_id, data):
        self._record("update_wc_product", product_id, data)
        self.products.setdefault(product_id, {"id": product_id}).update(data)
        return {"success": True}

    # Users
    async def get_wp_users(self):
        self._record("get_wp_users")
        return [{"id": 1, "username": "admin", "roles": ["administrator"]}]

    async def create_wp_user(self, data):
        self._record("create_wp_user", data)
        return {"success": True, "user_id": 12}

    async def update_wp_user(self, user_id, data):
        self._record("update_wp_user", user_id, data)
        return {"success": True}

    async def delete_wp_user(self, user_id, reassign=1):
        self._record("delete_wp_user", user_id, reassign)
        return {"success": True}

    async def send_password_reset(self, user_id):
        self._record("send_password_reset", user_id)
        return {"success": True}


def tool_call(name, arguments, call_id=None):
    return ToolCall(
        id=call_id or f"call_{name}",
        name=name,
        arguments=arguments,
        raw_arguments=json.dumps(arguments),
    )


def tool_use(*calls, input_tokens=100, output_tokens=20, text=""):
    return ModelResponse(
        stop_reason=StopReason.TOOL_USE,
        text=text,
        tool_calls=list(calls),
        input_tokens=input_tokens,
        output_tokens=output_tokens,
    )


def final(text, input_tokens=100, output_tokens=20):
    return ModelResponse(
        stop_reason=StopReason.END_TURN, text=text, input_tokens=input_tokens, output_tokens=output_tokens
    )


class ScriptedModelClient(ModelClient):
    """Returns the scripted responses in order; an Exception in the script is raised."""

    model = "scripted-model"

    def __init__(self, responses, alt_text=ALT_TEXT):
        self.responses = list(responses)
        self.alt_text = alt_text
        self.transcripts = []
        self.image_requests = []

    async def complete(self, system, transcript, tools):
        self.transcripts.append(list(transcript))
        if not self.responses:
            raise AssertionError("ScriptedModelClient ran out of responses")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    async def describe_image(self, image_url, context=None):
        self.image_requests.append((image_url, context))
        return self.alt_text


class EndlessToolModelClient(ScriptedModelClient):
    """Never gives a final answer; always asks for one more read."""

    def __init__(self):
        super().__init__([])

    async def complete(self, system, transcript, tools):
        self.transcripts.append(list(transcript))
        return tool_use(tool_call("list_media", {}, call_id=f"call_{len(self.transcripts)}"))


# ═══════════════════════════════════════════════════════
# FIXTURES
# ═══════════════════════════════════════════════════════

@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def website(db):
    site = Website(
        name="Client Site",
        site_url="https://client.example.com",
        wp_username="dashboard",
        wp_app_password="abcd efgh ijkl mnop",
        shared_secret="connector-secret",
    )
    db.add(site)
    db.commit()
    db.refresh(site)
    return site


@pytest.fixture
def action_log(db, website):
    return ActionLog(db, website.id, OPERATOR_ID)


@pytest.fixture
def provider():
    return FakeProvider()
