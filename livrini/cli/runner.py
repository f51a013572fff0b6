# livrini/cli/runner.py

"""Headless CLI commands over the LIVRINI client services."""

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from rich.console import Console
from rich.progress import BarColumn, Progress, TextColumn
from rich.prompt import Prompt
from rich.table import Table

from livrini.api.client import ApiClient
from livrini.api.errors import ApiError, BadRequestError
from livrini.api.token import claim_role
from livrini.config.settings import Settings
from livrini.models.delivery import format_address
from livrini.models.order import Order
from livrini.models.product import Product
from livrini.services.admin import AdminService
from livrini.services.auth import AuthService
from livrini.services.catalog import CatalogService, sort_products, stock_badge
from livrini.services.deliveries import (
    DELIVERY_STEPS,
    DeliveryService,
    filter_deliveries,
    step_for_status,
)
from livrini.services.delivery_tracker import TrackingFrame, TrackingSimulation
from livrini.services.notifications import NotificationService, format_time_ago
from livrini.services.orders import CheckoutService, OrderService, filter_orders
from livrini.services.pricing import apply_promo_code, compute_totals, format_amount
from livrini.storage.cart_store import Cart, Wishlist
from livrini.storage.file_manager import FileManager
from livrini.storage.local_store import LocalStore

logger = logging.getLogger("livrini.cli")

# Stderr console for status messages so stdout stays clean for JSON
_err = Console(stderr=True)


def _announce_logout(reason: str) -> None:
    _err.print(
        "[yellow]Session expirée, veuillez vous reconnecter "
        "(livrini login).[/yellow]"
    )


@dataclass
class ClientContext:
    """Every service wired to one store and one API client."""

    store: LocalStore
    client: ApiClient
    auth: AuthService
    catalog: CatalogService
    cart: Cart
    wishlist: Wishlist
    orders: OrderService
    checkout: CheckoutService
    deliveries: DeliveryService
    admin: AdminService

    @classmethod
    def build(
        cls,
        store: LocalStore | None = None,
        on_logout: Callable[[str], None] | None = _announce_logout,
    ) -> "ClientContext":
        store = store or LocalStore()
        client = ApiClient(store, on_logout=on_logout)
        cart = Cart(store)
        return cls(
            store=store,
            client=client,
            auth=AuthService(client, store),
            catalog=CatalogService(client),
            cart=cart,
            wishlist=Wishlist(store),
            orders=OrderService(client),
            checkout=CheckoutService(client, cart),
            deliveries=DeliveryService(client),
            admin=AdminService(client),
        )

    def role(self) -> str:
        claims = self.auth.current_claims()
        return claim_role(claims) if claims else "client"


# ── Rendering ────────────────────────────────────────────


def _print_products(products: list[Product], wishlist: Wishlist) -> None:
    table = Table(title="Catalogue", show_lines=False, title_style="bold cyan")
    table.add_column("ID", style="dim")
    table.add_column("Produit", max_width=50)
    table.add_column("Prix", justify="right", style="green")
    table.add_column("Catégorie", style="magenta")
    table.add_column("Stock", justify="center")
    table.add_column("♥", justify="center")
    for p in products:
        table.add_row(
            p.id,
            p.nom,
            format_amount(p.prix),
            p.categorie or "General",
            stock_badge(p) or "—",
            "♥" if wishlist.contains(p.id) else "",
        )
    Console().print(table)


def _print_cart(cart: Cart, promo: str | None) -> None:
    items = cart.items
    if not items:
        _err.print("[yellow]Votre panier est vide.[/yellow]")
        return
    percent = 0
    if promo:
        result = apply_promo_code(promo)
        colour = "green" if result.accepted else "red"
        _err.print(f"[{colour}]{result.message}[/{colour}]")
        percent = result.percent
    totals = compute_totals(items, percent)

    table = Table(title="Panier", title_style="bold cyan")
    table.add_column("ID", style="dim")
    table.add_column("Produit", max_width=50)
    table.add_column("Qté", justify="right")
    table.add_column("Prix", justify="right", style="green")
    for item in items:
        table.add_row(
            item.product_id,
            item.nom,
            str(item.quantity),
            format_amount(item.line_total),
        )
    console = Console()
    console.print(table)
    console.print(f"Sous-total: {format_amount(totals.subtotal)}")
    if totals.discount_percent:
        console.print(
            f"Réduction ({totals.discount_percent}%): "
            f"-{format_amount(totals.discount_amount)}"
        )
    console.print(
        "Livraison: "
        + ("Gratuit" if totals.free_shipping else format_amount(totals.shipping))
    )
    console.print(f"[bold]Total: {format_amount(totals.total)}[/bold]")


def _emit_json(data: object) -> None:
    json.dump(data, sys.stdout, ensure_ascii=False, indent=2, default=str)
    sys.stdout.write("\n")


# ── Command handlers ─────────────────────────────────────


def cmd_login(ctx: ClientContext, args: argparse.Namespace) -> int:
    password = args.password or Prompt.ask("Mot de passe", password=True)
    result = ctx.auth.login(args.email, password)
    _err.print(
        f"[green]✓ Connecté ({result.role}), tableau de bord: "
        f"{result.dashboard}[/green]"
    )
    return 0


def cmd_register(ctx: ClientContext, args: argparse.Namespace) -> int:
    password = args.password or Prompt.ask("Mot de passe", password=True)
    ctx.auth.register({
        "nom": args.nom,
        "prenom": args.prenom,
        "email": args.email,
        "adresse": args.adresse,
        "mdp": password,
        "role": args.role,
    })
    _err.print(
        f"[green]✓ Inscription réussie. Un code a été envoyé à "
        f"{args.email}.[/green]"
    )
    return 0


def cmd_verify_otp(ctx: ClientContext, args: argparse.Namespace) -> int:
    result = ctx.auth.verify_otp(args.email, args.otp)
    if result is None:
        _err.print(
            "[green]✓ Compte vérifié! Vous pouvez maintenant vous "
            "connecter.[/green]"
        )
    else:
        _err.print(
            f"[green]✓ Compte vérifié, tableau de bord: "
            f"{result.dashboard}[/green]"
        )
    return 0


def cmd_resend_otp(ctx: ClientContext, args: argparse.Namespace) -> int:
    ctx.auth.resend_otp(args.email)
    _err.print("[green]✓ Nouveau code envoyé![/green]")
    return 0


def cmd_logout(ctx: ClientContext, args: argparse.Namespace) -> int:
    ctx.auth.logout()
    _err.print("[green]✓ Déconnexion réussie[/green]")
    return 0


def cmd_me(ctx: ClientContext, args: argparse.Namespace) -> int:
    _emit_json(ctx.auth.me())
    return 0


def cmd_profile(ctx: ClientContext, args: argparse.Namespace) -> int:
    fields: dict[str, Any] = {}
    for key in ("nom", "prenom", "email"):
        value = getattr(args, key)
        if value is not None:
            fields[key] = value
    adresse = {
        name: value
        for name, value in (
            ("rue", args.rue),
            ("ville", args.ville),
            ("codePostal", args.code_postal),
            ("pays", args.pays),
        )
        if value is not None
    }
    if adresse:
        current = ctx.auth.current_user().get("adresse")
        fields["adresse"] = (
            {**current, **adresse} if isinstance(current, dict) else adresse
        )
    if not fields:
        _emit_json(ctx.auth.me())
        return 0
    _emit_json(ctx.auth.update_profile(fields) or fields)
    _err.print("[green]✓ Profil mis à jour avec succès[/green]")
    return 0


def cmd_password(ctx: ClientContext, args: argparse.Namespace) -> int:
    if not ctx.auth.is_authenticated:
        _err.print("[red]Veuillez vous connecter[/red]")
        return 1
    current = args.current or Prompt.ask("Mot de passe actuel", password=True)
    new_password = args.new_password
    if new_password is None:
        new_password = Prompt.ask("Nouveau mot de passe", password=True)
        if Prompt.ask("Confirmer le mot de passe", password=True) != new_password:
            _err.print(
                "[red]Les nouveaux mots de passe ne correspondent pas[/red]"
            )
            return 1
    ctx.auth.change_password(current, new_password)
    _err.print("[green]✓ Mot de passe changé avec succès[/green]")
    return 0


def cmd_products(ctx: ClientContext, args: argparse.Namespace) -> int:
    products = sort_products(ctx.catalog.list_products(args.category), args.sort)
    if args.output_format == "json":
        _emit_json([p.to_dict() for p in products])
    else:
        _print_products(products, ctx.wishlist)
    return 0


def _product_fields(args: argparse.Namespace) -> dict[str, Any]:
    fields = {
        "nom": args.nom,
        "prix": args.prix,
        "quantiteStock": args.quantite,
        "categorie": args.categorie,
        "description": args.description,
        "imageURL": args.image_url,
    }
    return {key: value for key, value in fields.items() if value is not None}


def cmd_product(ctx: ClientContext, args: argparse.Namespace) -> int:
    ctx.auth.require_role("fournisseur", "admin")
    action = args.product_action
    if action == "delete":
        ctx.catalog.delete_product(args.product_id)
        _err.print("[green]✓ Produit supprimé[/green]")
        return 0
    fields = _product_fields(args)
    if action == "create":
        product = ctx.catalog.create_product(fields)
        _err.print("[green]✓ Produit créé[/green]")
    else:
        if not fields:
            _err.print("[yellow]Aucun champ à mettre à jour[/yellow]")
            return 1
        product = ctx.catalog.update_product(args.product_id, fields)
        _err.print("[green]✓ Produit mis à jour[/green]")
    _print_products([product], ctx.wishlist)
    return 0


def cmd_cart(ctx: ClientContext, args: argparse.Namespace) -> int:
    action = args.cart_action or "show"
    if action == "add":
        product = ctx.catalog.get_product(args.product_id)
        item = ctx.cart.add(product, args.quantity)
        _err.print(f"[green]✓ {item.nom} ajouté au panier ({item.quantity})[/green]")
    elif action == "remove":
        if ctx.cart.remove(args.product_id):
            _err.print("[green]✓ Article supprimé du panier[/green]")
        else:
            _err.print("[yellow]Article absent du panier[/yellow]")
    elif action == "qty":
        if ctx.cart.update_quantity(args.product_id, args.delta) is None:
            _err.print("[yellow]Article absent du panier[/yellow]")
            return 1
    elif action == "clear":
        ctx.cart.clear()
        _err.print("[green]✓ Panier vidé[/green]")
    _print_cart(ctx.cart, getattr(args, "promo", None))
    return 0


def cmd_promo(ctx: ClientContext, args: argparse.Namespace) -> int:
    result = apply_promo_code(args.code)
    if not result.accepted:
        _err.print(f"[red]{result.message}[/red]")
        return 1
    _err.print(f"[green]{result.message}[/green]")
    return 0


def cmd_wishlist(ctx: ClientContext, args: argparse.Namespace) -> int:
    action = args.wishlist_action or "show"
    if action == "toggle":
        product = ctx.catalog.get_product(args.product_id)
        saved = ctx.wishlist.toggle(product)
        _err.print(
            "[green]✓ Ajouté aux favoris[/green]"
            if saved else "[green]✓ Retiré des favoris[/green]"
        )
    elif action == "remove":
        ctx.wishlist.remove(args.product_id)
        _err.print("[green]✓ Retiré des favoris[/green]")
    elif action == "move":
        item = ctx.wishlist.move_to_cart(args.product_id, ctx.cart)
        if item is None:
            _err.print("[yellow]Produit absent des favoris[/yellow]")
            return 1
        _err.print(f"[green]✓ {item.nom} ajouté au panier![/green]")
    elif action == "clear":
        ctx.wishlist.clear()
        _err.print("[green]✓ Favoris vidés[/green]")

    items = ctx.wishlist.items
    _err.print(f"[dim]{len(items)} produit(s) dans vos favoris[/dim]")
    if items:
        _print_products(items, ctx.wishlist)
    return 0


def cmd_checkout(ctx: ClientContext, args: argparse.Namespace) -> int:
    if not ctx.auth.is_authenticated:
        _err.print("[red]Veuillez vous connecter pour commander[/red]")
        return 1
    address = args.address or format_address(
        ctx.auth.current_user().get("adresse")
    )
    result = ctx.checkout.checkout(address, args.method, promo=args.promo)
    _err.print("[green]✓ Commande créée avec succès![/green]")
    if result.reference:
        _err.print(f"Numéro de commande: [bold]#{result.reference}[/bold]")
    _err.print(f"Montant: [bold]{format_amount(result.totals.total)}[/bold]")
    return 0


def _print_orders(orders: list[Order], title: str) -> None:
    table = Table(title=title, title_style="bold cyan")
    table.add_column("Commande", style="bold")
    table.add_column("Client")
    table.add_column("Statut")
    table.add_column("Total", justify="right", style="green")
    table.add_column("Date", style="dim")
    for o in orders:
        table.add_row(
            f"#{o.reference}",
            o.customer,
            o.status or "—",
            format_amount(o.total),
            o.created_at,
        )
    Console().print(table)


def cmd_orders(ctx: ClientContext, args: argparse.Namespace) -> int:
    if args.all_orders:
        ctx.auth.require_role("fournisseur", "admin")
        orders, title = ctx.orders.all_orders(), "Commandes"
    else:
        orders, title = ctx.orders.my_orders(), "Mes commandes"
    orders = filter_orders(orders, args.query or "")
    if args.export:
        path = FileManager().export("orders", [o.raw for o in orders], args.export)
        _err.print(f"[dim]Exported → {path}[/dim]")
    if not orders:
        _err.print("[yellow]Aucune commande trouvée.[/yellow]")
        return 0
    _print_orders(orders, title)
    return 0


def cmd_deliveries(ctx: ClientContext, args: argparse.Namespace) -> int:
    if args.all_deliveries:
        ctx.auth.require_role("fournisseur", "admin")
        deliveries, title = ctx.deliveries.all_deliveries(), "Livraisons"
    else:
        deliveries, title = ctx.deliveries.my_deliveries(), "Mes livraisons"
    deliveries = filter_deliveries(deliveries, args.query or "")
    if not deliveries:
        _err.print("[yellow]Aucune livraison trouvée.[/yellow]")
        return 0
    table = Table(title=title, title_style="bold cyan")
    table.add_column("ID", style="dim")
    table.add_column("Numéro", style="bold")
    table.add_column("Étape")
    table.add_column("Adresse", max_width=40)
    table.add_column("Date estimée", style="dim")
    for d in deliveries:
        step = DELIVERY_STEPS[step_for_status(d.statut)]
        table.add_row(d.id, d.numero or "—", step.label, d.adresse, d.date_estimee)
    Console().print(table)
    return 0


async def track_delivery(
    ctx: ClientContext, delivery_id: str | None, duration: float | None,
) -> int:
    """Play the tracking simulation as a Rich progress bar."""
    delivery = ctx.deliveries.get_delivery(delivery_id)
    _err.print(
        f"[bold]Suivi en temps réel[/bold] {delivery.numero}  "
        f"[dim]{delivery.adresse}[/dim]"
    )
    if delivery.livreur_nom:
        _err.print(
            f"[dim]Livreur: {delivery.livreur_nom} "
            f"{delivery.livreur_telephone}[/dim]"
        )
    simulation = TrackingSimulation(duration=duration)

    with Progress(
        TextColumn("{task.description}"),
        BarColumn(),
        TextColumn("{task.percentage:>3.0f}%"),
        TextColumn("[dim]{task.fields[eta]}[/dim]"),
        console=_err,
    ) as progress:
        task = progress.add_task("Préparation", total=100, eta="")

        def on_frame(frame: TrackingFrame) -> None:
            progress.update(
                task,
                completed=frame.percent,
                description=DELIVERY_STEPS[frame.step_index].label,
                eta=f"~{frame.eta_minutes} min",
            )

        await simulation.play(on_frame)

    _err.print("[green]✓ Colis livré[/green]")
    return 0


def cmd_track(ctx: ClientContext, args: argparse.Namespace) -> int:
    return asyncio.run(track_delivery(ctx, args.delivery_id, args.duration))


def cmd_notifications(ctx: ClientContext, args: argparse.Namespace) -> int:
    service = NotificationService(ctx.client, ctx.role())
    service.load()
    if args.mark_all:
        service.mark_all_read()
    if args.clear:
        service.clear()
    visible = service.visible(unread_only=args.unread)
    badge = service.badge()
    _err.print(
        f"[bold]Notifications[/bold] "
        f"{'(' + badge + ' non lues)' if badge else '(tout est lu)'}"
    )
    table = Table(show_header=True)
    table.add_column("Type", style="magenta")
    table.add_column("Titre", style="bold")
    table.add_column("Message", max_width=60)
    table.add_column("Quand", style="dim")
    for n in visible:
        title = n.title if n.read else f"● {n.title}"
        table.add_row(n.type, title, n.message, format_time_ago(n.created_at))
    Console().print(table)
    return 0


def cmd_admin(ctx: ClientContext, args: argparse.Namespace) -> int:
    ctx.auth.require_role("admin")
    action = args.admin_action
    if action == "users":
        listing = ctx.admin.list_users()
        if listing.fallback:
            _err.print("[yellow]Utilisateurs indisponibles, données d'exemple.[/yellow]")
        table = Table(title="Utilisateurs", title_style="bold cyan")
        for column in ("id", "name", "email", "role"):
            table.add_column(column)
        for u in listing.rows:
            table.add_row(u["id"], u["name"], u["email"], u["role"])
        Console().print(table)
    elif action == "create-user":
        password = args.password or Prompt.ask("Mot de passe", password=True)
        ctx.admin.create_user({
            "nom": args.nom,
            "prenom": args.prenom,
            "email": args.email,
            "role": args.role,
            "mdp": password,
        })
        _err.print(f"[green]✓ Utilisateur {args.email} créé[/green]")
    elif action == "delete-user":
        ctx.admin.delete_user(args.user_id)
        _err.print("[green]✓ Utilisateur supprimé[/green]")
    elif action == "categories":
        listing = ctx.admin.list_categories()
        if listing.fallback:
            _err.print("[yellow]Catégories indisponibles, données d'exemple.[/yellow]")
        table = Table(title="Catégories", title_style="bold cyan")
        table.add_column("ID", style="dim")
        table.add_column("Nom", style="bold")
        table.add_column("Produits", justify="right")
        for c in listing.rows:
            table.add_row(
                str(c.get("_id") or c.get("id") or ""),
                str(c.get("nom") or c.get("name") or ""),
                str(c.get("productCount", "")),
            )
        Console().print(table)
    elif action == "delete-category":
        ctx.catalog.delete_category(args.category_id)
        _err.print("[green]✓ Catégorie supprimée[/green]")
    elif action == "orders":
        listing = ctx.admin.list_orders()
        if listing.fallback:
            _err.print("[yellow]Commandes indisponibles, données d'exemple.[/yellow]")
        _print_orders([Order.from_api(r) for r in listing.rows], "Commandes")
    elif action == "alerts":
        listing = ctx.admin.stock_alerts()
        if listing.fallback:
            _err.print("[yellow]Alertes indisponibles, données d'exemple.[/yellow]")
        _emit_json(listing.rows)
    elif action == "resolve":
        if args.alert_id == "all":
            result = ctx.admin.resolve_all_alerts()
            _err.print(
                f"[green]✓ {len(result.resolved)} alerte(s) résolue(s)[/green]"
            )
            if result.failed:
                _err.print(f"[red]Échecs: {', '.join(result.failed)}[/red]")
                return 1
        else:
            ctx.admin.resolve_alert(args.alert_id)
            _err.print("[green]✓ Alerte résolue[/green]")
    elif action == "order-status":
        ctx.admin.update_order_status(args.order_id, args.status)
        _err.print(f"[green]✓ Statut mis à jour: {args.status}[/green]")
    elif action == "report":
        data = ctx.admin.report(args.kind)
        path = FileManager().export(f"report_{args.kind}", data, args.output_format)
        _err.print(f"[green]✓ Rapport exporté → {path}[/green]")
    return 0


_HANDLERS: dict[str, Callable[[ClientContext, argparse.Namespace], int]] = {
    "login": cmd_login,
    "register": cmd_register,
    "verify-otp": cmd_verify_otp,
    "resend-otp": cmd_resend_otp,
    "logout": cmd_logout,
    "me": cmd_me,
    "profile": cmd_profile,
    "password": cmd_password,
    "products": cmd_products,
    "product": cmd_product,
    "cart": cmd_cart,
    "promo": cmd_promo,
    "wishlist": cmd_wishlist,
    "checkout": cmd_checkout,
    "orders": cmd_orders,
    "deliveries": cmd_deliveries,
    "track": cmd_track,
    "notifications": cmd_notifications,
    "admin": cmd_admin,
}


def run_command(
    args: argparse.Namespace, ctx: ClientContext | None = None,
) -> int:
    """Dispatch a parsed command; API failures become exit code 1."""
    handler = _HANDLERS[args.command]
    ctx = ctx or ClientContext.build()
    try:
        return handler(ctx, args)
    except BadRequestError as exc:
        _err.print(f"[red]{exc.message}[/red]")
        for field_name, message in exc.field_errors.items():
            _err.print(f"[red]  {field_name}: {message}[/red]")
        return 1
    except ApiError as exc:
        logger.error("Command '%s' failed: %s", args.command, exc, exc_info=True)
        _err.print(f"[red]{exc.message}[/red]")
        return 1


async def run_health_check() -> int:
    """Run connectivity health check on the backend endpoints."""
    from livrini.services.health_checker import HealthChecker

    _err.print(f"[bold]Checking {Settings.API_BASE_URL}...[/bold]")
    checker = HealthChecker()
    results = await checker.check_all()

    table = Table(
        title="API Health Check",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("Endpoint", style="bold")
    table.add_column("Status", justify="center")
    table.add_column("Latency", justify="right")
    table.add_column("Notes", style="dim")

    any_down = False
    for r in results:
        if r.status == "ok":
            status = "[green]✅ OK[/green]"
        elif r.status == "slow":
            status = "[yellow]⚠️  SLOW[/yellow]"
        else:
            status = "[red]❌ DOWN[/red]"
            any_down = True

        latency = f"{r.latency_ms:.0f}ms" if r.latency_ms > 0 else "—"
        table.add_row(r.endpoint, status, latency, r.message)

    Console().print(table)
    return 1 if any_down else 0
