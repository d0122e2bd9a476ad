"""Command-line interface for schoolcart."""

import argparse
import json
import os
import sys
from collections.abc import Sequence
from pathlib import Path

from . import __version__
from .cart_store import DEFAULT_CART_ID, CartStore
from .catalog_store import CatalogStore
from .checkout import Checkout, Quote, price_store_lines
from .discounts import validate_codes
from .errors import SchoolCartError
from .log import setup_logging
from .models import Buyer, CartLine, Justification, StoreQuote
from .order_history import OrderHistory
from .pricing import format_percent
from .receipt import render_receipt, write_order_doc, write_receipt
from .utils import format_money, parse_justification_spec, parse_line_spec


def get_stores(args: argparse.Namespace) -> tuple[CatalogStore, CartStore, OrderHistory]:
    """Get the catalog, cart store and order history for the chosen data directory."""
    data_dir = Path(args.data_dir) if getattr(args, "data_dir", None) else None
    catalog = CatalogStore(data_dir)
    return catalog, CartStore(catalog.data_dir, catalog=catalog), OrderHistory(catalog.data_dir)


def _print_store_quote(quote: StoreQuote) -> None:
    totals = quote.totals
    print(f"{quote.store_name} [{quote.store_id}]")
    for item in totals.per_item:
        print(
            f"  {item.sku:<12} {item.quantity:>3} × {format_money(item.unit_price):>10}"
            f"  {format_money(item.final_line_total):>10}"
        )
        for discount in item.discounts:
            print(f"      {discount.label}: -{format_money(discount.amount)}")
    print(f"  Items subtotal:    {format_money(totals.items_subtotal)}")
    print(f"  Items discounts:  -{format_money(totals.items_discount)}")
    print(f"  Items net:         {format_money(totals.items_net)}")
    print(
        f"  Shipping:          {format_money(totals.shipping_net)}"
        f" (base {format_money(totals.shipping_base)},"
        f" -{format_money(totals.shipping_discount)})"
    )
    print(f"  GST:               {format_money(totals.gst)}")
    print(f"  Store total:       {format_money(totals.store_total)}")


def _print_quote(quote: Quote) -> None:
    for store_quote in quote.store_quotes:
        _print_store_quote(store_quote)
        print()

    summary = quote.summary
    print(f"Grand total (before codes): {format_money(summary.grand_total_before_discounts)}")
    if summary.percent_discount_amount > 0:
        label = summary.percent_code.code if summary.percent_code else "percent"
        print(f"  Percent discount ({label}): -{format_money(summary.percent_discount_amount)}")
    if summary.absolute_discount_amount > 0:
        print(f"  Discount codes: -{format_money(summary.absolute_discount_amount)}")
    if summary.cap_applied:
        print("  Discounts have been capped.")
    print(f"Grand total: {format_money(quote.grand_total)}")


def cmd_stores(args: argparse.Namespace) -> int:
    """List stores in the site index."""
    try:
        catalog, _, _ = get_stores(args)
        index = catalog.load_index()

        if args.json:
            print(json.dumps(index.to_dict(), indent=2))
            return 0

        print(f"{index.title} (GST {format_percent(index.gst_rate * 100)}%)")
        if not index.stores:
            print("No stores.")
        for store in index.stores:
            print(f"  {store.id:<16} {store.name}")
        return 0

    except SchoolCartError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_store(args: argparse.Namespace) -> int:
    """Show one store's products and discount rules."""
    try:
        catalog, _, _ = get_stores(args)
        store = catalog.get_store(args.store_id)

        if args.json:
            print(json.dumps(store.to_dict(), indent=2))
            return 0

        print(f"{store.name} [{store.id}]")
        for alert in store.alerts:
            print(f"  ! {alert.message}")
        print(f"  Shipping: {format_money(store.shipping_base_fee)}")
        if store.max_qty_per_item is not None:
            print(f"  Quantities limited to {store.max_qty_per_item} per item.")
        for rule in store.discounts:
            print(f"  Rule: {json.dumps(rule.to_dict())}")
        for product in store.products:
            print(f"  {product.sku:<12} {format_money(product.unit_price):>10}  {product.name}")
        return 0

    except SchoolCartError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_price(args: argparse.Namespace) -> int:
    """Price ad-hoc lines against one store."""
    try:
        catalog, _, _ = get_stores(args)
        store = catalog.get_store(args.store_id)
        lines = [CartLine(*parse_line_spec(spec)) for spec in args.lines]
        quote = price_store_lines(store, lines, catalog.gst_rate())

        if args.json:
            print(json.dumps(quote.to_dict(include_items=True), indent=2))
        else:
            _print_store_quote(quote)
        return 0

    except SchoolCartError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_cart(args: argparse.Namespace) -> int:
    """Show or edit the persisted cart."""
    try:
        _, carts, _ = get_stores(args)
        action = args.cart_command or "show"

        if action == "add":
            cart = carts.add(args.cart, args.store_id, args.sku, args.qty)
        elif action == "set":
            cart = carts.set_qty(args.cart, args.store_id, args.sku, args.qty)
        elif action == "remove":
            cart = carts.remove(args.cart, args.store_id, args.sku)
        elif action == "clear":
            if args.store:
                cart = carts.clear_store(args.cart, args.store)
            else:
                cart = carts.clear(args.cart)
        else:
            cart = carts.load_or_create(args.cart)

        if getattr(args, "json", False):
            print(json.dumps(cart.to_dict(), indent=2))
            return 0

        if not cart.lines:
            print("Your cart is empty.")
            return 0
        for store_id in cart.non_empty_store_ids():
            print(f"{store_id}:")
            for line in cart.store_lines(store_id):
                print(f"  {line.sku:<12} × {line.quantity}")
        print(f"Total items: {cart.total_qty()}")
        return 0

    except SchoolCartError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_quote(args: argparse.Namespace) -> int:
    """Price the persisted cart with discount codes."""
    try:
        catalog, carts, history = get_stores(args)
        cart = carts.load_or_create(args.cart)
        applied = validate_codes(args.code or [], catalog.discount_codes())
        quote = Checkout(catalog, history).quote(cart, applied)

        if args.json:
            print(json.dumps(quote.to_dict(), indent=2))
            return 0

        if quote.is_empty:
            print("Your cart is empty.")
            return 0
        _print_quote(quote)
        return 0

    except SchoolCartError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_checkout(args: argparse.Namespace) -> int:
    """Place an order for the persisted cart and clear it."""
    try:
        catalog, carts, history = get_stores(args)
        cart = carts.load_or_create(args.cart)
        applied = validate_codes(args.code or [], catalog.discount_codes())

        justifications = [
            Justification(*parse_justification_spec(spec)) for spec in args.justify or []
        ]
        buyer = Buyer(name=args.name, class_name=args.class_name, justifications=justifications)

        order = Checkout(catalog, history).place_order(
            cart,
            applied,
            buyer,
            args.card,
            breakdown_suppressed=args.suppress_breakdown,
        )
        carts.clear(args.cart)

        if args.write_json:
            write_order_doc(order, args.write_json)
            print(f"Wrote order JSON to {args.write_json}")
        if args.write_md:
            write_receipt(order, args.write_md)
            print(f"Wrote receipt to {args.write_md}")

        print(f"Order placed: {order.id[:8]}")
        print(f"  Charged: {format_money(order.payment_info.charge_amount)}")
        print(f"  Gift card balance: {format_money(order.payment_info.balance_after)}")
        return 0

    except SchoolCartError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_orders_list(args: argparse.Namespace) -> int:
    """List placed orders."""
    try:
        _, _, history = get_stores(args)
        orders = history.list_orders(limit=args.limit)

        if args.json:
            print(json.dumps([o.to_dict() for o in orders], indent=2))
            return 0

        if not orders:
            print("No orders.")
            return 0
        for order in orders:
            print(
                f"{order.id[:8]}  {order.created_at}  {order.buyer.name} ({order.buyer.class_name})"
                f"  {format_money(order.grand_total)}"
            )
        return 0

    except SchoolCartError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_orders_show(args: argparse.Namespace) -> int:
    """Show one order as a receipt (or JSON)."""
    try:
        _, _, history = get_stores(args)
        order = history.get_order(args.order_id)

        if args.json:
            print(json.dumps(order.to_dict(), indent=2))
        else:
            print(render_receipt(order))
        return 0

    except SchoolCartError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_orders_clear(args: argparse.Namespace) -> int:
    """Delete all stored orders."""
    try:
        _, _, history = get_stores(args)
        count = history.clear()
        print(f"Cleared {count} order(s)")
        return 0

    except SchoolCartError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_serve(args: argparse.Namespace) -> int:
    """Start the API server."""
    try:
        import uvicorn

        if args.data_dir:
            os.environ["SCHOOLCART_DATA_DIR"] = str(Path(args.data_dir).resolve())

        print("Starting schoolcart API server...")
        print(f"API docs: http://{args.host}:{args.port}/docs")
        print()

        # When reload is enabled, uvicorn requires the app as an import string
        app_target = "schoolcart.api:app" if args.reload else None
        if app_target is None:
            from .api import app
            app_target = app

        uvicorn.run(
            app_target,
            host=args.host,
            port=args.port,
            reload=args.reload,
            workers=1,  # Single worker to avoid concurrent write issues
        )
        return 0

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="schoolcart",
        description="Price multi-store carts, apply discount codes and check out with a gift card.",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        "--data-dir", help="Data directory (default: $SCHOOLCART_DATA_DIR or ./data)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # stores
    stores_parser = subparsers.add_parser("stores", help="List stores")
    stores_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # store
    store_parser = subparsers.add_parser("store", help="Show a store's catalog")
    store_parser.add_argument("store_id", help="Store ID")
    store_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # price
    price_parser = subparsers.add_parser("price", help="Price lines against one store")
    price_parser.add_argument("store_id", help="Store ID")
    price_parser.add_argument("lines", nargs="+", help="Lines as 'sku=qty' (qty defaults to 1)")
    price_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # cart (subcommand group)
    cart_parser = subparsers.add_parser("cart", help="Show or edit the cart")
    cart_parser.add_argument(
        "--cart", default=DEFAULT_CART_ID, help=f"Cart ID (default: {DEFAULT_CART_ID})"
    )
    cart_parser.add_argument("--json", action="store_true", help="Output as JSON")
    cart_subparsers = cart_parser.add_subparsers(dest="cart_command")

    cart_subparsers.add_parser("show", help="Show the cart")

    cart_add_parser = cart_subparsers.add_parser("add", help="Add units of a product")
    cart_add_parser.add_argument("store_id", help="Store ID")
    cart_add_parser.add_argument("sku", help="Product sku")
    cart_add_parser.add_argument("--qty", "-q", type=int, default=1, help="Units to add (default: 1)")

    cart_set_parser = cart_subparsers.add_parser("set", help="Set a line's quantity (0 removes)")
    cart_set_parser.add_argument("store_id", help="Store ID")
    cart_set_parser.add_argument("sku", help="Product sku")
    cart_set_parser.add_argument("qty", type=int, help="New quantity")

    cart_remove_parser = cart_subparsers.add_parser("remove", help="Remove a line")
    cart_remove_parser.add_argument("store_id", help="Store ID")
    cart_remove_parser.add_argument("sku", help="Product sku")

    cart_clear_parser = cart_subparsers.add_parser("clear", help="Clear the cart")
    cart_clear_parser.add_argument("--store", "-s", help="Clear only this store's lines")

    # quote
    quote_parser = subparsers.add_parser("quote", help="Price the cart with discount codes")
    quote_parser.add_argument("--cart", default=DEFAULT_CART_ID, help="Cart ID")
    quote_parser.add_argument(
        "--code", "-c", action="append", help="Discount code (repeatable)"
    )
    quote_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # checkout
    checkout_parser = subparsers.add_parser("checkout", help="Place an order with a gift card")
    checkout_parser.add_argument("--cart", default=DEFAULT_CART_ID, help="Cart ID")
    checkout_parser.add_argument("--name", required=True, help="Buyer name")
    checkout_parser.add_argument("--class", dest="class_name", required=True, help="Buyer class")
    checkout_parser.add_argument("--card", required=True, help="Gift card number")
    checkout_parser.add_argument(
        "--justify", "-j", action="append", help="Justification as 'sku=reason' (repeatable)"
    )
    checkout_parser.add_argument(
        "--code", "-c", action="append", help="Discount code (repeatable)"
    )
    checkout_parser.add_argument(
        "--suppress-breakdown", action="store_true",
        help="Hide per-item and shipping breakdowns on the receipt"
    )
    checkout_parser.add_argument("--write-md", "-m", help="Write markdown receipt to path")
    checkout_parser.add_argument("--write-json", "-w", help="Write order JSON to path")

    # orders (subcommand group)
    orders_parser = subparsers.add_parser("orders", help="Browse placed orders")
    orders_subparsers = orders_parser.add_subparsers(dest="orders_command")

    orders_list_parser = orders_subparsers.add_parser("list", help="List orders")
    orders_list_parser.add_argument("--limit", "-n", type=int, help="Show only the newest N")
    orders_list_parser.add_argument("--json", action="store_true", help="Output as JSON")

    orders_show_parser = orders_subparsers.add_parser("show", help="Show an order receipt")
    orders_show_parser.add_argument("order_id", help="Order ID")
    orders_show_parser.add_argument("--json", action="store_true", help="Output as JSON")

    orders_subparsers.add_parser("clear", help="Delete all orders")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Start the API server")
    serve_parser.add_argument(
        "--host", default="127.0.0.1", help="Host to bind to (default: 127.0.0.1)"
    )
    serve_parser.add_argument(
        "--port", "-p", type=int, default=8000, help="Port to bind to (default: 8000)"
    )
    serve_parser.add_argument(
        "--reload", action="store_true", help="Enable auto-reload for development"
    )

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    setup_logging()

    # Handle orders subcommands
    if args.command == "orders":
        if not getattr(args, "orders_command", None):
            parser.parse_args(["orders", "--help"])
            return 0
        if args.orders_command == "list":
            return cmd_orders_list(args)
        elif args.orders_command == "show":
            return cmd_orders_show(args)
        elif args.orders_command == "clear":
            return cmd_orders_clear(args)

    commands = {
        "stores": cmd_stores,
        "store": cmd_store,
        "price": cmd_price,
        "cart": cmd_cart,
        "quote": cmd_quote,
        "checkout": cmd_checkout,
        "serve": cmd_serve,
    }

    cmd_func = commands.get(args.command)
    if cmd_func:
        return cmd_func(args)

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
