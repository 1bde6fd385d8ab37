from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.models.schemas import ProductCreate, ProductRead, ProductUpdate
from app.services.product_service import (
    ProductNotFoundError,
    create_product,
    delete_product,
    get_product,
    list_products,
    update_product,
)

router = APIRouter(prefix="/api", tags=["products"])


# The path parameter is named `id` because request metrics key resource-scoped
# routes off that name (see METRICS_RESOURCE_PARAM).
@router.get("/products", response_model=list[ProductRead])
async def get_products(db: Session = Depends(get_db)) -> list[ProductRead]:
    return list_products(db=db)


@router.get("/products/{id}", response_model=ProductRead)
async def get_product_by_id(id: int, db: Session = Depends(get_db)) -> ProductRead:  # noqa: A002
    product = get_product(db=db, product_id=id)
    if product is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@router.post("/products", response_model=ProductRead, status_code=status.HTTP_201_CREATED)
async def post_product(payload: ProductCreate, response: Response, db: Session = Depends(get_db)) -> ProductRead:
    product = create_product(db=db, data=payload)
    response.headers["Location"] = f"/api/products/{product.id}"
    return product


@router.put("/products/{id}", status_code=status.HTTP_204_NO_CONTENT)
async def put_product(id: int, payload: ProductUpdate, db: Session = Depends(get_db)) -> Response:  # noqa: A002
    try:
        update_product(db=db, product_id=id, data=payload)
    except ProductNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/products/{id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_product(id: int, db: Session = Depends(get_db)) -> Response:  # noqa: A002
    try:
        delete_product(db=db, product_id=id)
    except ProductNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
