"""
URL configuration for sales app.
"""

from django.urls import path

from . import views

app_name = "sales"

urlpatterns = [
    # POS
    path(
        "stores/<uuid:store_id>/sales/",
        views.SaleListCreateView.as_view(),
        name="sale_list",
    ),
    path("stores/<uuid:store_id>/sales/<uuid:sale_id>/", views.sale_detail, name="sale_detail"),
    # Marketplace
    path("marketplace/items/", views.MarketplaceItemListView.as_view(), name="marketplace_items"),
    path(
        "marketplace/items/<uuid:item_id>/",
        views.marketplace_item_detail,
        name="marketplace_item_detail",
    ),
    path("marketplace/items/<uuid:item_id>/order/", views.place_order, name="place_order"),
    path("marketplace/orders/", views.MyOrderListView.as_view(), name="my_orders"),
    path(
        "stores/<uuid:store_id>/marketplace/orders/",
        views.StoreOrderListView.as_view(),
        name="store_orders",
    ),
    path(
        "stores/<uuid:store_id>/marketplace/orders/<uuid:order_id>/status/",
        views.update_order_status,
        name="order_status",
    ),
    # Cash drawer
    path("stores/<uuid:store_id>/cash-drawer/", views.drawer_summary, name="drawer_summary"),
    path("stores/<uuid:store_id>/cash-drawer/open/", views.open_drawer, name="drawer_open"),
    path("stores/<uuid:store_id>/cash-drawer/close/", views.close_drawer, name="drawer_close"),
    path(
        "stores/<uuid:store_id>/cash-drawer/movements/",
        views.CashMovementListCreateView.as_view(),
        name="cash_movements",
    ),
    # Receipts
    path("receipts/pdf/", views.receipt_pdf, name="receipt_pdf"),
    path("receipts/share-text/", views.receipt_share_text, name="receipt_share_text"),
]
