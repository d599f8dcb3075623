from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, Path, Response

from ..crud import (
    create_product,
    decrease_stock,
    delete_product,
    get_low_stock_products,
    get_product,
    get_products,
    increase_stock,
    update_product,
)
from ..database import get_gateway
from ..gateway import StorageGateway
from ..messaging import notify_low_stock
from ..schemas import ProductCreate, ProductOut, ProductUpdate, StockAdjustment

router = APIRouter(prefix="/api/products", tags=["Products"])

ProductId = Annotated[int, Path(gt=0, description="**Product ID** (positive integer)")]


@router.post("/", response_model=ProductOut, status_code=201)
def Create_Product(
    body: ProductCreate,
    gateway: StorageGateway = Depends(get_gateway),
):
    return create_product(
        gateway,
        name=body.name,
        description=body.description,
        stock_quantity=body.stock_quantity,
        low_stock_threshold=body.low_stock_threshold,
    )


@router.get("/", response_model=list[ProductOut])
def View_Products(gateway: StorageGateway = Depends(get_gateway)):
    return get_products(gateway)


# Declared before /{product_id} so "low-stock" is not parsed as an id
@router.get("/low-stock", response_model=list[ProductOut])
def View_Low_Stock_Products(gateway: StorageGateway = Depends(get_gateway)):
    return get_low_stock_products(gateway)


@router.get("/{product_id}", response_model=ProductOut)
def View_Product(
    product_id: ProductId,
    gateway: StorageGateway = Depends(get_gateway),
):
    return get_product(gateway, product_id)


@router.put("/{product_id}", response_model=ProductOut)
def Update_Product(
    body: ProductUpdate,
    product_id: ProductId,
    gateway: StorageGateway = Depends(get_gateway),
):
    return update_product(gateway, product_id, **body.model_dump(exclude_none=True))


@router.delete("/{product_id}", status_code=204, response_class=Response)
def Delete_Product(
    product_id: ProductId,
    gateway: StorageGateway = Depends(get_gateway),
):
    delete_product(gateway, product_id)
    return Response(status_code=204)


@router.patch("/{product_id}/stock/increase", response_model=ProductOut)
def Increase_Stock(
    body: StockAdjustment,
    product_id: ProductId,
    gateway: StorageGateway = Depends(get_gateway),
):
    return increase_stock(gateway, product_id, body.amount)


@router.patch("/{product_id}/stock/decrease", response_model=ProductOut)
def Decrease_Stock(
    body: StockAdjustment,
    background_tasks: BackgroundTasks,
    product_id: ProductId,
    gateway: StorageGateway = Depends(get_gateway),
):
    product = decrease_stock(gateway, product_id, body.amount)
    if product.stock_quantity < product.low_stock_threshold:
        background_tasks.add_task(
            notify_low_stock, ProductOut.model_validate(product).model_dump()
        )
    return product
