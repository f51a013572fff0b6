# livrini/ui/app.py

"""Terminal storefront for the LIVRINI client."""

import asyncio
import logging
from collections.abc import Callable
from typing import cast

from rich.text import Text
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal, Vertical
from textual.widgets import (
    Button,
    DataTable,
    Footer,
    Header,
    Input,
    Static,
)

from livrini.api.errors import ApiError
from livrini.cli.runner import ClientContext
from livrini.models.product import Product
from livrini.services.catalog import stock_badge
from livrini.services.pricing import apply_promo_code, compute_totals, format_amount
from livrini.storage.local_store import (
    CART_UPDATED,
    STORAGE_CHANGED,
    WISHLIST_UPDATED,
)

logger = logging.getLogger("livrini.ui")


class LivriniApp(App[object]):
    """Catalog, cart and promo code in one screen."""

    CSS_PATH = "styles.css"
    TITLE = "LIVRINI"

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("a", "add_to_cart", "Add to cart"),
        Binding("w", "toggle_wishlist", "Wishlist"),
        Binding("plus", "increase", "Qty +"),
        Binding("minus", "decrease", "Qty −"),
        Binding("d", "remove_item", "Remove"),
        Binding("r", "reload", "Reload"),
    ]

    def __init__(self, context: ClientContext | None = None) -> None:
        super().__init__()
        self.ctx = context or ClientContext.build(on_logout=self._on_logout)
        self.products: list[Product] = []
        self.cart_ids: list[str] = []
        self.discount_percent = 0
        self.session_expired = False
        self._unsubscribe: list[Callable[[], None]] = []

    def compose(self) -> ComposeResult:
        """Build the widget tree for the TUI."""
        yield Header()
        yield Container(
            Static("🛍️  LIVRINI", id="title"),
            Static("Ready", id="status"),
            Horizontal(
                Vertical(
                    Static("Catalogue", classes="section"),
                    DataTable(
                        id="products_table",
                        zebra_stripes=True,
                        cursor_type="row",
                    ),
                    id="catalog_pane",
                ),
                Vertical(
                    Static("Panier", classes="section"),
                    DataTable(
                        id="cart_table",
                        zebra_stripes=True,
                        cursor_type="row",
                    ),
                    Horizontal(
                        Input(placeholder="Code promo", id="promo_input"),
                        Button("Appliquer", variant="primary", id="promo_btn"),
                        id="promo_bar",
                    ),
                    Static("", id="totals"),
                    id="cart_pane",
                ),
                id="panes",
            ),
            id="main_container",
        )
        yield Footer()

    async def on_mount(self) -> None:
        """Configure tables, hook storage events and load the catalog."""
        self._products_table().add_columns(
            "Produit", "Prix", "Catégorie", "Stock", "♥"
        )
        self._cart_table().add_columns("Produit", "Qté", "Total")

        store = self.ctx.store
        self._unsubscribe = [
            store.subscribe(CART_UPDATED, self._on_store_event),
            store.subscribe(WISHLIST_UPDATED, self._on_store_event),
            store.subscribe(STORAGE_CHANGED, self._on_store_event),
        ]
        self.set_interval(1.0, store.poll)

        self.refresh_cart()
        await self.load_products()

    def on_unmount(self) -> None:
        for unsubscribe in self._unsubscribe:
            unsubscribe()
        self._unsubscribe = []

    def _on_logout(self, reason: str) -> None:
        # May run in a worker thread; surfaced after the call returns.
        logger.warning("Session ended (%s)", reason)
        self.session_expired = True

    def _report_session(self) -> None:
        if self.session_expired:
            self.session_expired = False
            self.notify(
                "Session expirée, veuillez vous reconnecter", severity="warning"
            )

    def _on_store_event(self, event: str) -> None:
        logger.debug("Store event %s, refreshing views", event)
        self.refresh_cart()
        if event != CART_UPDATED:
            self.populate_products()

    # ── Widgets ──────────────────────────────────────────

    def _products_table(self) -> DataTable[str | Text]:
        return cast(
            DataTable[str | Text],
            self.query_one("#products_table", DataTable),
        )

    def _cart_table(self) -> DataTable[str | Text]:
        return cast(
            DataTable[str | Text],
            self.query_one("#cart_table", DataTable),
        )

    def _selected_product(self) -> Product | None:
        row = self._products_table().cursor_row
        if 0 <= row < len(self.products):
            return self.products[row]
        return None

    def _selected_cart_id(self) -> str | None:
        row = self._cart_table().cursor_row
        if 0 <= row < len(self.cart_ids):
            return self.cart_ids[row]
        return None

    # ── Catalog ──────────────────────────────────────────

    async def load_products(self) -> None:
        status = self.query_one("#status", Static)
        status.update("🔍 Chargement des produits...")
        try:
            self.products = await asyncio.to_thread(
                self.ctx.catalog.list_products
            )
        except ApiError as exc:
            logger.error("Failed to load products: %s", exc, exc_info=True)
            self.notify(exc.message, severity="error")
            status.update("❌ Catalogue indisponible")
            return
        finally:
            self._report_session()
        self.populate_products()
        status.update(f"✅ {len(self.products)} produits")

    def populate_products(self) -> None:
        table = self._products_table()
        table.clear()
        for p in self.products:
            badge = stock_badge(p)
            table.add_row(
                p.nom[:50],
                format_amount(p.prix),
                p.categorie or "General",
                Text(badge, style="bold red") if badge else "",
                "♥" if self.ctx.wishlist.contains(p.id) else "",
            )

    # ── Cart ─────────────────────────────────────────────

    def refresh_cart(self) -> None:
        items = self.ctx.cart.items
        table = self._cart_table()
        table.clear()
        self.cart_ids = [item.product_id for item in items]
        for item in items:
            table.add_row(
                item.nom[:40], str(item.quantity), format_amount(item.line_total)
            )

        totals = compute_totals(items, self.discount_percent)
        lines = [f"Sous-total: {format_amount(totals.subtotal)}"]
        if totals.discount_percent:
            lines.append(
                f"Réduction ({totals.discount_percent}%): "
                f"-{format_amount(totals.discount_amount)}"
            )
        lines.append(
            "Livraison: "
            + ("Gratuit" if totals.free_shipping else format_amount(totals.shipping))
        )
        lines.append(f"Total: {format_amount(totals.total)}")
        self.query_one("#totals", Static).update("\n".join(lines))

    async def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "promo_btn":
            self.apply_promo()

    async def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id == "promo_input":
            self.apply_promo()

    def apply_promo(self) -> None:
        code = self.query_one("#promo_input", Input).value
        result = apply_promo_code(code)
        self.discount_percent = result.percent
        self.notify(
            result.message, severity="information" if result.accepted else "error"
        )
        self.refresh_cart()

    def action_add_to_cart(self) -> None:
        product = self._selected_product()
        if product is None:
            self.notify("Aucun produit sélectionné", severity="warning")
            return
        self.ctx.cart.add(product)
        self.notify(f"{product.nom} ajouté au panier")

    def action_toggle_wishlist(self) -> None:
        product = self._selected_product()
        if product is None:
            return
        saved = self.ctx.wishlist.toggle(product)
        self.notify("Ajouté aux favoris" if saved else "Retiré des favoris")

    def action_increase(self) -> None:
        product_id = self._selected_cart_id()
        if product_id:
            self.ctx.cart.update_quantity(product_id, 1)

    def action_decrease(self) -> None:
        product_id = self._selected_cart_id()
        if product_id:
            self.ctx.cart.update_quantity(product_id, -1)

    def action_remove_item(self) -> None:
        product_id = self._selected_cart_id()
        if product_id and self.ctx.cart.remove(product_id):
            self.notify("Article supprimé du panier")

    async def action_reload(self) -> None:
        await self.load_products()
        self.refresh_cart()
