from __future__ import annotations

import random
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from django.core.management.base import BaseCommand
from django.db import transaction

from modules.accounts.models import Address
from modules.carts.dtos import AddCartItemDTO
from modules.catalog.dtos import CreateProductDTO, CreateVariationDTO
from modules.catalog.models import ProductVariation
from modules.core.container import (
    build_cart_service,
    build_catalog_service,
    build_currency_service,
    build_offer_service,
    build_order_service,
)
from modules.offers.dtos import CreateOfferDTO
from modules.orders.dtos import CreateOrderDTO
from shared.domain.actor import ADMIN, BUYER, SELLER, Actor
from shared.domain.exceptions import DomainError


class Command(BaseCommand):
    help = "Seed database with realistic development data."

    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding development data...")

        with transaction.atomic():
            users = self._seed_users()
            admin = Actor.from_user(users["admin"])
            build_currency_service().get_rate(admin)
            variations = self._seed_catalog(Actor.from_user(users["seller"]))
            buyers = [users["buyer"], users["buyer2"]]
            addresses = self._seed_addresses(buyers)
            orders_created = self._seed_orders(buyers, addresses, variations)
            offers_created = self._seed_offers(buyers, variations)

        self.stdout.write(
            self.style.SUCCESS(
                "Seed completed: "
                f"users={len(users)}, "
                f"variations={len(variations)}, "
                f"orders={orders_created}, "
                f"offers={offers_created}"
            )
        )

    def _seed_users(self) -> dict:
        User = get_user_model()
        groups = {name: Group.objects.get_or_create(name=name)[0] for name in (ADMIN, SELLER, BUYER)}
        seed_users = [
            ("admin", "admin123", ADMIN),
            ("seller", "seller123", SELLER),
            ("buyer", "buyer123", BUYER),
            ("buyer2", "buyer123", BUYER),
        ]
        users = {}
        for username, password, role in seed_users:
            user = User.objects.filter(username=username).first()
            if user is None:
                user = User.objects.create_user(username, password=password)
                user.groups.add(groups[role])
            users[username] = user
        return users

    def _seed_catalog(self, seller: Actor) -> list[ProductVariation]:
        self.stdout.write("Creating catalog...")
        existing = list(ProductVariation.objects.filter(sku__startswith="SEED-"))
        if existing:
            self.stdout.write(self.style.WARNING("Catalog already seeded."))
            return existing

        service = build_catalog_service()
        catalog = [
            ("Wax print fabric", [("pattern", "kente"), ("pattern", "bogolan")], Decimal("15000")),
            ("Leather sandals", [("size", "40"), ("size", "42"), ("size", "44")], Decimal("32000")),
            ("Solar lantern", [("color", "black"), ("color", "white")], Decimal("45000")),
            ("Coffee beans 1kg", [("roast", "medium"), ("roast", "dark")], Decimal("18500")),
        ]
        variations: list[ProductVariation] = []
        for index, (name, options, price) in enumerate(catalog, start=1):
            product = service.create_product(CreateProductDTO(name=name), seller)
            for position, (key, value) in enumerate(options, start=1):
                variations.append(
                    service.create_variation(
                        product.id,
                        CreateVariationDTO(
                            sku=f"SEED-{index:02d}-{position:02d}",
                            price=price,
                            attributes=[(key, value)],
                            initial_stock=random.randint(15, 120),
                        ),
                        seller,
                    )
                )
        self.stdout.write(self.style.SUCCESS("Creating catalog... Done!"))
        return variations

    def _seed_addresses(self, buyers) -> dict:
        addresses = {}
        for buyer in buyers:
            address, _ = Address.objects.get_or_create(
                user=buyer,
                is_default=True,
                defaults={
                    "street": f"{random.randint(1, 400)} Avenue du Commerce",
                    "city": "Kinshasa",
                    "state": "Kinshasa",
                    "zip_code": "00000",
                    "country": "CD",
                },
            )
            addresses[buyer.pk] = address
        return addresses

    def _seed_orders(self, buyers, addresses, variations) -> int:
        self.stdout.write("Creating orders...")
        cart_service = build_cart_service()
        order_service = build_order_service()
        created = 0
        for i in range(6):
            buyer = random.choice(buyers)
            actor = Actor.from_user(buyer)
            try:
                for variation in random.sample(variations, k=random.randint(1, 3)):
                    cart_service.add_item(
                        actor,
                        AddCartItemDTO(variation_id=variation.id, quantity=random.randint(1, 3)),
                    )
                order_service.create(
                    actor,
                    CreateOrderDTO(
                        shipping_address_id=addresses[buyer.pk].id,
                        currency=random.choice(["FC", "USD"]),
                        idempotency_key=f"seed-order-{i + 1}",
                    ),
                )
            except DomainError as exc:
                self.stdout.write(self.style.WARNING(f"Skipping order {i + 1}: {exc.message}"))
                cart_service.clear(actor)
                continue
            created += 1
        self.stdout.write(self.style.SUCCESS("Creating orders... Done!"))
        return created

    def _seed_offers(self, buyers, variations) -> int:
        self.stdout.write("Creating offers...")
        service = build_offer_service()
        created = 0
        for buyer, variation in zip(buyers, random.sample(variations, k=len(buyers))):
            try:
                service.create(
                    Actor.from_user(buyer),
                    CreateOfferDTO(
                        variation_id=variation.id,
                        proposed_price=(variation.price * Decimal("0.85")).quantize(Decimal("1")),
                        message="Would you take a little less for this one?",
                    ),
                )
            except DomainError as exc:
                self.stdout.write(self.style.WARNING(f"Skipping offer: {exc.message}"))
                continue
            created += 1
        self.stdout.write(self.style.SUCCESS("Creating offers... Done!"))
        return created
