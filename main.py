# main.py

"""Entry point for the LIVRINI client (TUI or headless CLI)."""

import argparse
import asyncio
import logging
import sys

from livrini.config.logging_config import setup_logging
from livrini.services.admin import REPORT_KINDS
from livrini.services.catalog import SORT_OPTIONS

logger = logging.getLogger("livrini.main")


def _positive_float(value: str) -> float:
    """argparse type for strictly positive durations."""
    try:
        number = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {value!r}") from None
    if not 0 < number < float("inf"):
        raise argparse.ArgumentTypeError(f"must be a finite number above 0: {value}")
    return number


def _add_product_fields(parser: argparse.ArgumentParser, required: bool) -> None:
    parser.add_argument("--nom", required=required)
    parser.add_argument("--prix", type=float, required=required)
    parser.add_argument("--stock", type=int, default=None, dest="quantite")
    parser.add_argument("--categorie", default=None)
    parser.add_argument("--description", default=None)
    parser.add_argument("--image", default=None, dest="image_url")


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="livrini",
        description="LIVRINI e-commerce and delivery client.",
        epilog="Run without a command to launch the interactive TUI.",
    )
    parser.add_argument(
        "--health",
        action="store_true",
        default=False,
        help="Run a connectivity health check on the backend API.",
    )
    sub = parser.add_subparsers(dest="command")

    # --- Account ---
    login = sub.add_parser("login", help="Log in and store the session token.")
    login.add_argument("email")
    login.add_argument("-p", "--password", default=None)

    register = sub.add_parser("register", help="Create an account.")
    register.add_argument("email")
    register.add_argument("--nom", required=True)
    register.add_argument("--prenom", required=True)
    register.add_argument("--adresse", default="")
    register.add_argument(
        "--role", choices=["client", "fournisseur"], default="client"
    )
    register.add_argument("-p", "--password", default=None)

    verify = sub.add_parser("verify-otp", help="Confirm the emailed OTP code.")
    verify.add_argument("email")
    verify.add_argument("otp")

    resend = sub.add_parser("resend-otp", help="Send a new OTP code.")
    resend.add_argument("email")

    sub.add_parser("logout", help="Clear the stored session.")
    sub.add_parser("me", help="Show the current user profile as JSON.")

    profile = sub.add_parser(
        "profile", help="Show or edit my profile (no option shows it)."
    )
    profile.add_argument("--nom", default=None)
    profile.add_argument("--prenom", default=None)
    profile.add_argument("--email", default=None)
    profile.add_argument("--rue", default=None)
    profile.add_argument("--ville", default=None)
    profile.add_argument("--code-postal", default=None, dest="code_postal")
    profile.add_argument("--pays", default=None)

    password = sub.add_parser("password", help="Change my password.")
    password.add_argument("--current", default=None)
    password.add_argument("--new", default=None, dest="new_password")

    # --- Catalog ---
    products = sub.add_parser("products", help="List catalog products.")
    products.add_argument("-c", "--category", default=None)
    products.add_argument("--sort", choices=SORT_OPTIONS, default="featured")
    products.add_argument(
        "-f",
        "--format",
        choices=["json", "table"],
        default="table",
        dest="output_format",
    )

    product = sub.add_parser("product", help="Supplier product management.")
    product_sub = product.add_subparsers(dest="product_action", required=True)
    _add_product_fields(product_sub.add_parser("create"), required=True)
    product_update = product_sub.add_parser("update")
    product_update.add_argument("product_id")
    _add_product_fields(product_update, required=False)
    product_sub.add_parser("delete").add_argument("product_id")

    # --- Cart ---
    cart = sub.add_parser("cart", help="Show or change the shopping cart.")
    cart.add_argument("--promo", default=None, help="Preview a promo code.")
    cart_sub = cart.add_subparsers(dest="cart_action")
    cart_sub.add_parser("show")
    cart_add = cart_sub.add_parser("add")
    cart_add.add_argument("product_id")
    cart_add.add_argument("-q", "--quantity", type=int, default=1)
    cart_remove = cart_sub.add_parser("remove")
    cart_remove.add_argument("product_id")
    cart_qty = cart_sub.add_parser("qty", help="Change a quantity by a delta.")
    cart_qty.add_argument("product_id")
    cart_qty.add_argument("delta", type=int)
    cart_sub.add_parser("clear")

    promo = sub.add_parser("promo", help="Check a promo code.")
    promo.add_argument("code")

    wishlist = sub.add_parser("wishlist", help="Show or change favourites.")
    wish_sub = wishlist.add_subparsers(dest="wishlist_action")
    wish_sub.add_parser("show")
    for action in ("toggle", "remove", "move"):
        wish_sub.add_parser(action).add_argument("product_id")
    wish_sub.add_parser("clear")

    checkout = sub.add_parser("checkout", help="Place an order for the cart.")
    checkout.add_argument("-a", "--address", default=None)
    checkout.add_argument("-m", "--method", choices=["cash", "card"], default="cash")
    checkout.add_argument("--promo", default=None)

    # --- Orders and deliveries ---
    orders = sub.add_parser("orders", help="List my orders.")
    orders.add_argument("--query", default=None)
    orders.add_argument(
        "--all", action="store_true", dest="all_orders",
        help="Every order (supplier or admin).",
    )
    orders.add_argument("--export", choices=["json", "csv"], default=None)

    deliveries = sub.add_parser("deliveries", help="List my deliveries.")
    deliveries.add_argument("--query", default=None)
    deliveries.add_argument(
        "--all", action="store_true", dest="all_deliveries",
        help="Every delivery (supplier or admin).",
    )

    track = sub.add_parser("track", help="Live tracking of a delivery.")
    track.add_argument("delivery_id", nargs="?", default=None)
    track.add_argument(
        "--duration", type=_positive_float, default=None,
        help="Simulation length in seconds.",
    )

    notifications = sub.add_parser("notifications", help="Notification bell.")
    notifications.add_argument("--unread", action="store_true")
    notifications.add_argument("--read-all", action="store_true", dest="mark_all")
    notifications.add_argument("--clear", action="store_true")

    # --- Admin ---
    admin = sub.add_parser("admin", help="Administrator dashboard.")
    admin_sub = admin.add_subparsers(dest="admin_action", required=True)
    admin_sub.add_parser("users")
    create_user = admin_sub.add_parser("create-user")
    create_user.add_argument("email")
    create_user.add_argument("--nom", required=True)
    create_user.add_argument("--prenom", required=True)
    create_user.add_argument(
        "--role", choices=["client", "fournisseur", "admin"], default="client"
    )
    create_user.add_argument("-p", "--password", default=None)
    admin_sub.add_parser("delete-user").add_argument("user_id")
    admin_sub.add_parser("categories")
    admin_sub.add_parser("delete-category").add_argument("category_id")
    admin_sub.add_parser("orders")
    admin_sub.add_parser("alerts")
    resolve = admin_sub.add_parser("resolve", help="Resolve an alert or 'all'.")
    resolve.add_argument("alert_id")
    status = admin_sub.add_parser("order-status")
    status.add_argument("order_id")
    status.add_argument("status")
    report = admin_sub.add_parser("report")
    report.add_argument("kind", choices=REPORT_KINDS)
    report.add_argument(
        "-f",
        "--format",
        choices=["json", "csv"],
        default="json",
        dest="output_format",
    )
    return parser


def _run_tui() -> None:
    """Launch the interactive Textual TUI."""
    from livrini.ui.app import LivriniApp

    try:
        app = LivriniApp()
        app.run()
    except Exception:
        logger.critical("Fatal error during TUI run", exc_info=True)
        raise
    finally:
        logger.info("livrini TUI shutting down")


def _run_cli(args: argparse.Namespace) -> None:
    """Run one headless command and exit."""
    from livrini.cli.runner import run_command

    sys.exit(run_command(args))


def _run_health_check() -> None:
    """Run backend connectivity health check."""
    from livrini.cli.runner import run_health_check

    exit_code = asyncio.run(run_health_check())
    sys.exit(exit_code)


def main() -> None:
    """Route to TUI (no command) or headless CLI."""
    log_file = setup_logging()
    logger.info("livrini starting, log file: %s", log_file)

    parser = _build_parser()
    args = parser.parse_args()

    if args.health:
        _run_health_check()
    elif args.command is None:
        _run_tui()
    else:
        _run_cli(args)


if __name__ == "__main__":
    main()
