"""
Product search over the local catalog.

Pipeline: category filter -> gender filter -> relevance ranking ->
availability flag -> offset/limit page. Ranking is by how many query words
appear in a product's name, type and description; ties keep catalog order,
so the same query always pages through the same sequence.
"""

import logging
import re
from typing import Optional

from commerce_bot.schemas.catalog_schema import Product
from commerce_bot.schemas.collaborator_schema import ProductPage, ProductQuery, ProductRecord
from commerce_bot.tools.catalog import CatalogStore

logger = logging.getLogger(__name__)

UNISEX = "unisex"
_STOPWORDS = frozenset({"a", "an", "the", "for", "i", "want", "need", "some", "me", "my", "show", "of", "and"})


def _tokens(text: str) -> set[str]:
    return {t for t in re.findall(r"[a-z0-9]+", text.lower()) if t not in _STOPWORDS}


def _matches_gender(product: Product, gender: Optional[str]) -> bool:
    if gender is None or gender == UNISEX:
        return True
    product_gender = product.gender.lower()
    return product_gender == gender or product_gender == UNISEX


def _relevance(product: Product, query_tokens: set[str]) -> int:
    haystack = _tokens(f"{product.name} {product.type} {product.description or ''}")
    return len(query_tokens & haystack)


def search_products(request: ProductQuery, catalog: Optional[CatalogStore] = None) -> ProductPage:
    """Return one page of products matching the query, category and gender."""
    catalog = catalog or CatalogStore()
    products = catalog.products()
    stock = catalog.inventory()
    query_tokens = _tokens(request.query)

    if request.category:
        products = [p for p in products if p.type.lower() == request.category]
    products = [p for p in products if _matches_gender(p, request.gender)]

    if query_tokens:
        if not request.category and not request.gender:
            products = [p for p in products if _relevance(p, query_tokens) > 0]
        # sorted() is stable, so equal scores keep catalog order
        products = sorted(products, key=lambda p: _relevance(p, query_tokens), reverse=True)

    page = products[request.offset:request.offset + request.limit]
    items = [
        ProductRecord(
            sku=p.sku,
            name=p.name,
            category=p.type,
            gender=p.gender,
            price=p.price,
            image_url=p.image_url,
            delivery_days=p.delivery_days,
            available=(stock[p.sku].total_qty >= 1) if p.sku in stock else False,
        )
        for p in page
    ]
    has_more = request.offset + request.limit < len(products)
    logger.info(
        "Search '%s' (category=%s, gender=%s): showing %d of %d from offset %d",
        request.query, request.category, request.gender, len(items), len(products), request.offset,
    )
    return ProductPage(items=items, has_more=has_more)
