"""
WordPress REST client - async capability provider for one managed site.

Two API bases:
- /wp-json/wp/v2           core REST API (media, pages, posts, menus)
- /wp-json/dashboard/v1    dashboard connector mu-plugin (health, plugins,
                           themes, core, cache, maintenance, WooCommerce, users)

Auth: WordPress Application Password (basic auth) plus X-Dashboard-Secret.
State-changing connector calls also send X-Dashboard-Action: confirm.

SECURITY: credentials are never logged; error messages are built from the
WordPress error code, not from request data.
"""
import json
import logging
from typing import Any, Dict, List, Optional

import httpx

from app.core.config import settings
from app.core.exceptions import RemoteSystemError
from app.models.website import Website
from app.services.capability_provider import ToolCapabilityProvider

logger = logging.getLogger(__name__)

CORE_BASE = "/wp-json/wp/v2"
CONNECTOR_BASE = "/wp-json/dashboard/v1"

# WordPress error codes that deserve a specific, actionable message
_KNOWN_ERRORS = {
    "rest_not_logged_in": (
        "Authentication failed: WordPress is not receiving the credentials. "
        "Hosting may strip the Authorization header; add "
        "'RewriteRule .* - [E=HTTP_AUTHORIZATION:%{HTTP:Authorization}]' to .htaccess."
    ),
    "invalid_application_password": (
        "Invalid Application Password. Generate a new one in WordPress: "
        "Users > Profile > Application Passwords."
    ),
    "incorrect_password": (
        "Invalid Application Password. Generate a new one in WordPress: "
        "Users > Profile > Application Passwords."
    ),
    "invalid_username": "WordPress username not found. Use the login name, not the email.",
    "rest_forbidden": "Access denied: the WordPress user needs the Administrator role.",
    "rest_no_route": "Endpoint not found. The dashboard connector mu-plugin may be missing or outdated.",
}


def parse_wp_error(status_code: int, body: str) -> str:
    """Turn a WordPress error response into an operator-readable message."""
    try:
        payload = json.loads(body)
    except ValueError:
        return f"WP API Error ({status_code}): {body[:200]}"

    if not isinstance(payload, dict):
        return f"WP API Error ({status_code}): {body[:200]}"

    code = payload.get("code") or ""
    if code in _KNOWN_ERRORS:
        return f"WP API Error ({status_code}): {_KNOWN_ERRORS[code]}"
    if payload.get("message"):
        return f"WP API Error ({status_code}): {payload['message']}"
    return f"WP API Error ({status_code}): {body[:200]}"


class WPClient(ToolCapabilityProvider):
    """Async client for one WordPress site."""

    def __init__(
        self,
        site_url: str,
        username: str,
        app_password: str,
        shared_secret: str,
        timeout: float = None,
        transport: httpx.AsyncBaseTransport = None,
    ):
        self.site_url = site_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.site_url,
            auth=(username, app_password),
            headers={
                "Content-Type": "application/json",
                "X-Dashboard-Secret": shared_secret,
            },
            timeout=timeout or settings.WP_REQUEST_TIMEOUT_SECONDS,
            transport=transport,
        )

    @classmethod
    def from_website(cls, website: Website) -> "WPClient":
        if not website.has_credentials:
            raise RemoteSystemError("WordPress credentials not configured for this website")
        return cls(
            site_url=website.site_url,
            username=website.wp_username,
            app_password=website.wp_app_password,
            shared_secret=website.shared_secret,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    # ─── Core Request Method ─────────────────────────────────────────

    async def _request(
        self,
        endpoint: str,
        method: str = "GET",
        body: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        custom: bool = False,
        confirm: bool = False,
    ) -> Any:
        url = f"{CONNECTOR_BASE if custom else CORE_BASE}{endpoint}"
        headers = {"X-Dashboard-Action": "confirm"} if confirm else None
        clean_params = {k: str(v) for k, v in (params or {}).items() if v is not None}

        try:
            response = await self._client.request(
                method, url, json=body, params=clean_params or None, headers=headers
            )
        except httpx.TimeoutException as e:
            logger.warning(f"WordPress timeout: {method} {url}")
            raise RemoteSystemError(f"WordPress request timed out ({method} {endpoint})") from e
        except httpx.HTTPError as e:
            logger.warning(f"WordPress network error: {method} {url}: {type(e).__name__}")
            raise RemoteSystemError(f"Could not reach WordPress site: {type(e).__name__}") from e

        if response.status_code >= 400:
            message = parse_wp_error(response.status_code, response.text)
            logger.info(f"WordPress rejected {method} {url}: {response.status_code}")
            raise RemoteSystemError(message, status_code=response.status_code)

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise RemoteSystemError(f"WordPress returned non-JSON response for {endpoint}") from e

    # ─── Standard WP REST API ────────────────────────────────────────

    async def get_media(self, per_page: int = 100, page: int = 1, search: Optional[str] = None) -> List[Dict[str, Any]]:
        return await self._request("/media", params={"per_page": per_page, "page": page, "search": search})

    async def get_media_item(self, media_id: int) -> Dict[str, Any]:
        return await self._request(f"/media/{media_id}")

    async def update_media_item(self, media_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request(f"/media/{media_id}", method="POST", body=data)

    async def get_pages(self, per_page: int = 100, page: int = 1, search: Optional[str] = None,
                        status: str = "publish") -> List[Dict[str, Any]]:
        return await self._request(
            "/pages", params={"per_page": per_page, "page": page, "status": status, "search": search}
        )

    async def get_page(self, page_id: int) -> Dict[str, Any]:
        return await self._request(f"/pages/{page_id}", params={"context": "edit"})

    async def update_page(self, page_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request(f"/pages/{page_id}", method="POST", body=data)

    async def get_posts(self, per_page: int = 100, page: int = 1, search: Optional[str] = None,
                        status: str = "publish") -> List[Dict[str, Any]]:
        return await self._request(
            "/posts", params={"per_page": per_page, "page": page, "status": status, "search": search}
        )

    async def get_post(self, post_id: int) -> Dict[str, Any]:
        return await self._request(f"/posts/{post_id}", params={"context": "edit"})

    async def update_post(self, post_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request(f"/posts/{post_id}", method="POST", body=data)

    async def get_menus(self) -> List[Dict[str, Any]]:
        return await self._request("/menus", params={"context": "edit"})

    async def get_menu_items(self, menu_id: int) -> List[Dict[str, Any]]:
        return await self._request("/menu-items", params={"menus": menu_id, "per_page": 100})

    async def create_menu_item(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("/menu-items", method="POST", body={**data, "status": "publish"})

    async def delete_menu_item(self, item_id: int) -> Dict[str, Any]:
        return await self._request(f"/menu-items/{item_id}", method="DELETE", params={"force": "true"})

    # ─── Connector endpoints (mu-plugin required) ────────────────────

    async def get_site_health(self) -> Dict[str, Any]:
        return await self._request("/site-health", custom=True)

    async def get_plugins(self) -> List[Dict[str, Any]]:
        return await self._request("/plugins", custom=True)

    async def toggle_plugin(self, plugin: str, activate: bool) -> Dict[str, Any]:
        return await self._request(
            "/plugins/toggle", method="POST", body={"plugin": plugin, "activate": activate},
            custom=True, confirm=True,
        )

    async def update_plugin(self, plugin: str) -> Dict[str, Any]:
        return await self._request(
            "/plugins/update", method="POST", body={"plugin": plugin}, custom=True, confirm=True
        )

    async def get_themes(self) -> List[Dict[str, Any]]:
        return await self._request("/themes", custom=True)

    async def update_theme(self, theme: str) -> Dict[str, Any]:
        return await self._request(
            "/themes/update", method="POST", body={"theme": theme}, custom=True, confirm=True
        )

    async def update_core(self) -> Dict[str, Any]:
        return await self._request("/core/update", method="POST", custom=True, confirm=True)

    async def get_debug_log(self, lines: int = 200) -> Dict[str, Any]:
        return await self._request("/debug-log", params={"lines": lines}, custom=True)

    async def get_db_health(self) -> Dict[str, Any]:
        return await self._request("/db-health", custom=True)

    async def clear_cache(self) -> Dict[str, Any]:
        return await self._request("/cache/clear", method="POST", custom=True, confirm=True)

    async def toggle_maintenance(self, enable: bool) -> Dict[str, Any]:
        return await self._request(
            "/maintenance", method="POST", body={"enable": enable}, custom=True, confirm=True
        )

    # ─── WooCommerce ─────────────────────────────────────────────────

    async def get_wc_orders(self, per_page: int = 10, page: int = 1, status: Optional[str] = None) -> Any:
        return await self._request(
            "/woocommerce/orders", params={"per_page": per_page, "page": page, "status": status}, custom=True
        )

    async def get_wc_order(self, order_id: int) -> Dict[str, Any]:
        return await self._request(f"/woocommerce/order/{order_id}", custom=True)

    async def get_wc_stats(self) -> Dict[str, Any]:
        return await self._request("/woocommerce/stats", custom=True)

    async def get_wc_products(self, per_page: int = 20, page: int = 1, search: Optional[str] = None,
                              status: str = "publish") -> Any:
        return await self._request(
            "/woocommerce/products",
            params={"per_page": per_page, "page": page, "search": search, "status": status},
            custom=True,
        )

    async def get_wc_product(self, product_id: int) -> Dict[str, Any]:
        return await self._request(f"/woocommerce/product/{product_id}", custom=True)

    async def update_wc_product(self, product_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request(
            "/woocommerce/product/update", method="POST",
            body={"product_id": product_id, **data}, custom=True, confirm=True,
        )

    # ─── Users ───────────────────────────────────────────────────────

    async def get_wp_users(self) -> List[Dict[str, Any]]:
        return await self._request("/users", custom=True)

    async def create_wp_user(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("/users/create", method="POST", body=data, custom=True, confirm=True)

    async def update_wp_user(self, user_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request(
            "/users/update", method="POST", body={"user_id": user_id, **data}, custom=True, confirm=True
        )

    async def delete_wp_user(self, user_id: int, reassign: int = 1) -> Dict[str, Any]:
        return await self._request(
            "/users/delete", method="POST", body={"user_id": user_id, "reassign": reassign},
            custom=True, confirm=True,
        )

    async def send_password_reset(self, user_id: int) -> Dict[str, Any]:
        return await self._request(
            "/users/password-reset", method="POST", body={"user_id": user_id}, custom=True, confirm=True
        )
