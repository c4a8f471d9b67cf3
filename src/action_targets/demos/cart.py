from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Dict, List

from rich.table import Table

from action_targets.actions.dispatcher import ActionDispatcher
from action_targets.core.logging import get_logger
from action_targets.demos.base import Demo, DemoContext


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    price: int


CATALOG: List[Product] = [
    Product("1", "Shoes", 20),
    Product("2", "Hat", 40),
    Product("3", "Socks", 5),
    Product("4", "Pants", 60),
    Product("5", "Shirt", 30),
    Product("6", "Jacket", 80),
    Product("7", "Gloves", 10),
    Product("8", "Scarf", 15),
    Product("9", "Belt", 25),
    Product("10", "Sunglasses", 35),
    Product("11", "Watch", 100),
]


class CartStore:
    """In-memory stand-in for a remote cart service."""

    def __init__(self, *, add_delay: float, get_delay: float) -> None:
        self._items: List[Product] = [CATALOG[0]]
        self._add_delay = add_delay
        self._get_delay = get_delay

    async def add(self, item: Product) -> None:
        await asyncio.sleep(self._add_delay)
        self._items.append(item)

    async def get(self) -> List[Product]:
        await asyncio.sleep(self._get_delay)
        return list(self._items)


class CartDemo(Demo):
    name = "cart"
    description = "Product grid whose add-to-cart actions revalidate the cart read."

    async def run(self, ctx: DemoContext) -> None:
        log = get_logger(demo=self.name)
        co = ctx.coordination
        delay = ctx.settings.fetch_delay_seconds
        store = CartStore(add_delay=ctx.settings.action_delay_seconds, get_delay=delay)

        async def fetch_products() -> List[Product]:
            await asyncio.sleep(delay)
            return list(CATALOG)

        async def add_item_to_cart(form: Dict[str, str]) -> None:
            await store.add(Product(id=str(form["id"]), name=str(form["name"]), price=int(form["price"])))

        products = await co.targets.read("products", fetch_products)
        await co.targets.read("cart", store.get)

        # One dispatcher per tile, all sharing the same action.
        tiles: Dict[str, ActionDispatcher] = {
            p.id: co.dispatcher(add_item_to_cart, ["cart"], name="tile-%s" % p.id) for p in products
        }

        def render(title: str) -> None:
            ctx.console.rule(title)
            ctx.console.print(_product_table(products, tiles))
            ctx.console.print(_cart_table(co.targets.peek("cart")))
            ctx.console.print("inflight adds: %d" % len(co.inflight.list(add_item_to_cart)))

        render("Cart loaded")

        picks = [p for p in products if p.name in ("Hat", "Shirt")]
        tasks = [
            tiles[p.id].submit({"id": p.id, "name": p.name, "price": str(p.price)}) for p in picks
        ]
        log.info("adding", items=[p.name for p in picks])
        render("Adding")

        await asyncio.gather(*tasks)
        await co.scheduler.wait_idle()
        # The cart target was revalidated; this read refetches.
        await co.targets.read("cart", store.get)
        render("Added")


def _product_table(products: List[Product], tiles: Dict[str, ActionDispatcher]) -> Table:
    table = Table(title="Products")
    table.add_column("Product")
    table.add_column("Price", justify="right")
    table.add_column("")
    for p in products:
        button = "Adding..." if tiles[p.id].pending else "Add to cart"
        table.add_row(p.name, "$%d" % p.price, button)
    return table


def _cart_table(items: List[Product]) -> Table:
    table = Table(title="Cart")
    table.add_column("Item")
    if not items:
        table.add_row("Your cart is empty")
    for item in items:
        table.add_row("%s - %d" % (item.name, item.price))
    return table
