"""
ToolCapabilityProvider: the operations the engine may perform against a remote site.

WPClient is the production implementation; tests substitute an in-memory fake.
Implementations raise RemoteSystemError on failure and otherwise return plain
JSON-serializable data. Calls are not assumed idempotent: the engine never
retries a write on its own.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


class ToolCapabilityProvider(ABC):

    # ─── Content ──────────────────────────────────────────────────────

    @abstractmethod
    async def get_media(self, per_page: int = 100, page: int = 1, search: Optional[str] = None) -> List[Dict[str, Any]]: ...

    @abstractmethod
    async def get_media_item(self, media_id: int) -> Dict[str, Any]: ...

    @abstractmethod
    async def update_media_item(self, media_id: int, data: Dict[str, Any]) -> Dict[str, Any]: ...

    @abstractmethod
    async def get_pages(self, per_page: int = 100, page: int = 1, search: Optional[str] = None,
                        status: str = "publish") -> List[Dict[str, Any]]: ...

    @abstractmethod
    async def get_page(self, page_id: int) -> Dict[str, Any]: ...

    @abstractmethod
    async def update_page(self, page_id: int, data: Dict[str, Any]) -> Dict[str, Any]: ...

    @abstractmethod
    async def get_posts(self, per_page: int = 100, page: int = 1, search: Optional[str] = None,
                        status: str = "publish") -> List[Dict[str, Any]]: ...

    @abstractmethod
    async def get_post(self, post_id: int) -> Dict[str, Any]: ...

    @abstractmethod
    async def update_post(self, post_id: int, data: Dict[str, Any]) -> Dict[str, Any]: ...

    @abstractmethod
    async def get_menus(self) -> List[Dict[str, Any]]: ...

    @abstractmethod
    async def get_menu_items(self, menu_id: int) -> List[Dict[str, Any]]: ...

    @abstractmethod
    async def create_menu_item(self, data: Dict[str, Any]) -> Dict[str, Any]: ...

    @abstractmethod
    async def delete_menu_item(self, item_id: int) -> Dict[str, Any]: ...

    # ─── Site health & plugins ───────────────────────────────────────

    @abstractmethod
    async def get_site_health(self) -> Dict[str, Any]: ...

    @abstractmethod
    async def get_plugins(self) -> List[Dict[str, Any]]: ...

    @abstractmethod
    async def toggle_plugin(self, plugin: str, activate: bool) -> Dict[str, Any]: ...

    @abstractmethod
    async def update_plugin(self, plugin: str) -> Dict[str, Any]: ...

    @abstractmethod
    async def get_themes(self) -> List[Dict[str, Any]]: ...

    @abstractmethod
    async def update_theme(self, theme: str) -> Dict[str, Any]: ...

    @abstractmethod
    async def update_core(self) -> Dict[str, Any]: ...

    @abstractmethod
    async def get_debug_log(self, lines: int = 200) -> Dict[str, Any]: ...

    @abstractmethod
    async def get_db_health(self) -> Dict[str, Any]: ...

    @abstractmethod
    async def clear_cache(self) -> Dict[str, Any]: ...

    @abstractmethod
    async def toggle_maintenance(self, enable: bool) -> Dict[str, Any]: ...

    # ─── WooCommerce ─────────────────────────────────────────────────

    @abstractmethod
    async def get_wc_orders(self, per_page: int = 10, page: int = 1, status: Optional[str] = None) -> Any: ...

    @abstractmethod
    async def get_wc_order(self, order_id: int) -> Dict[str, Any]: ...

    @abstractmethod
    async def get_wc_stats(self) -> Dict[str, Any]: ...

    @abstractmethod
    async def get_wc_products(self, per_page: int = 20, page: int = 1, search: Optional[str] = None,
                              status: str = "publish") -> Any: ...

    @abstractmethod
    async def get_wc_product(self, product_id: int) -> Dict[str, Any]: ...

    @abstractmethod
    async def update_wc_product(self, product_id: int, data: Dict[str, Any]) -> Dict[str, Any]: ...

    # ─── Users ───────────────────────────────────────────────────────

    @abstractmethod
    async def get_wp_users(self) -> List[Dict[str, Any]]: ...

    @abstractmethod
    async def create_wp_user(self, data: Dict[str, Any]) -> Dict[str, Any]: ...

    @abstractmethod
    async def update_wp_user(self, user_id: int, data: Dict[str, Any]) -> Dict[str, Any]: ...

    @abstractmethod
    async def delete_wp_user(self, user_id: int, reassign: int = 1) -> Dict[str, Any]: ...

    @abstractmethod
    async def send_password_reset(self, user_id: int) -> Dict[str, Any]: ...

    async def aclose(self) -> None:
        """Release network resources. No-op by default."""
