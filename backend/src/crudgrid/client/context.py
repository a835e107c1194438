"""Wiring of the client layer: one shared cache, the stores and the tables."""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

import httpx

from crudgrid.client.api_client import ApiClient, AuthApi, ProductsApi, UsersApi
from crudgrid.client.cache import PRODUCTS, USERS, CollectionCache, ProductsSource, UsersSource
from crudgrid.client.drafts import DraftStore, user_drafts
from crudgrid.client.forms import UserFormBridge
from crudgrid.client.merge import MergedCollection
from crudgrid.client.notifications import NotificationCenter
from crudgrid.client.session import AuthSession, IdentityStore
from crudgrid.client.storage import SessionStorage, create_session_storage
from crudgrid.client.table import ColumnKind, ColumnSpec, TableController
from crudgrid.core.config import ClientSettings, get_client_settings
from crudgrid.core.exceptions import ApiError, FetchError, NetworkError
from crudgrid.models.user import User

logger = logging.getLogger(__name__)

USER_COLUMNS = (
    ColumnSpec("id", "ID", ColumnKind.NUMERIC, width=70),
    ColumnSpec("firstName", "First Name"),
    ColumnSpec("lastName", "Last Name"),
    ColumnSpec("age", "Age", ColumnKind.NUMERIC, width=80),
    ColumnSpec("email", "Email", width=220),
    ColumnSpec("phone", "Phone"),
    ColumnSpec("birthDate", "Birth Date"),
)

PRODUCT_COLUMNS = (
    ColumnSpec("id", "ID", ColumnKind.NUMERIC, width=70),
    ColumnSpec("title", "Title"),
    ColumnSpec("brand", "Brand"),
    ColumnSpec("category", "Category"),
    ColumnSpec("price", "Price", ColumnKind.NUMERIC),
    ColumnSpec("rating", "Rating", ColumnKind.NUMERIC),
    ColumnSpec("stock", "Stock", ColumnKind.NUMERIC),
)


@dataclass
class ClientContext:
    """Everything a presentation layer needs, created once per session."""

    settings: ClientSettings
    api: ApiClient
    cache: CollectionCache
    storage: SessionStorage
    drafts: DraftStore[User]
    notifications: NotificationCenter
    session: AuthSession
    users_table: TableController
    products_table: TableController
    users_view: MergedCollection
    user_form: UserFormBridge

    async def load(self) -> None:
        """Restore the session and load both collections.

        An unreachable server while restoring the session or a collection that
        fails to load is reported as a notification; the user triggers the
        retry.
        """
        try:
            await self.session.initialize()
        except (NetworkError, ApiError) as e:
            logger.warning(f"Could not restore the session: {e}")
            self.notifications.error(e)
        for key in (USERS, PRODUCTS):
            try:
                await self.cache.fetch_all(key)
            except FetchError as e:
                self.notifications.error(e)

    def refresh_products_table(self) -> None:
        self.products_table.set_data(self.cache.records(PRODUCTS))

    async def close(self) -> None:
        self.users_view.close()
        await self.session.close()
        for key in (USERS, PRODUCTS):
            await self.cache.wait_idle(key)
        await self.api.aclose()


def create_client_context(
    settings: Optional[ClientSettings] = None,
    http_client: Optional[httpx.AsyncClient] = None,
    storage: Optional[SessionStorage] = None,
    on_logout: Optional[Callable[[], None]] = None,
) -> ClientContext:
    """Build the client layer around one shared ``CollectionCache``."""
    settings = settings or get_client_settings()
    api = ApiClient(settings, http_client)
    storage = storage or create_session_storage(settings)
    notifications = NotificationCenter()

    cache = CollectionCache(stale_time=settings.stale_time_seconds)
    cache.register(USERS, UsersSource(UsersApi(api)))
    cache.register(PRODUCTS, ProductsSource(ProductsApi(api)))

    drafts = user_drafts(storage)
    users_table = TableController([], USER_COLUMNS, page_size=settings.default_page_size)
    products_table = TableController([], PRODUCT_COLUMNS, page_size=settings.default_page_size)

    context = ClientContext(
        settings=settings,
        api=api,
        cache=cache,
        storage=storage,
        drafts=drafts,
        notifications=notifications,
        session=AuthSession(AuthApi(api), IdentityStore(storage), settings, notifications, on_logout),
        users_table=users_table,
        products_table=products_table,
        users_view=MergedCollection(cache, USERS, drafts, users_table),
        user_form=UserFormBridge(cache, drafts, notifications),
    )
    cache.subscribe(PRODUCTS, lambda key, snapshot, reason: context.refresh_products_table())
    logger.info(f"Client context created for {settings.api_base_url}")
    return context
