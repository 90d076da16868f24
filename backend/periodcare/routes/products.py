"""
PeriodCare Backend - Product Search Proxy Route
=================================================

What:  GET /api/products?q=... forwards a search to SerpAPI Google Shopping.
Why:   The SerpAPI key must stay server-side; the browser only sees results.
How:   Thin handler over ProductSearchService. Provider failures raise
       SearchProviderError, which the global handler turns into
       500 {"error": "Failed to fetch products"}.

Open route: no auth gate.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from periodcare.routes.deps import get_product_search
from periodcare.schemas.api import ErrorResponse, ProductsResponse
from periodcare.services.product_search import ProductSearchService

router = APIRouter(tags=["Products"])


@router.get(
    "/products",
    response_model=ProductsResponse,
    responses={500: {"description": "Search provider failed", "model": ErrorResponse}},
    summary="Search shopping results",
)
async def search_products(
    q: Optional[str] = Query(
        default=None,
        description="Search phrase; defaults to 'period care products' when omitted",
    ),
    search: ProductSearchService = Depends(get_product_search),
) -> ProductsResponse:
    return ProductsResponse(products=await search.search(q))
