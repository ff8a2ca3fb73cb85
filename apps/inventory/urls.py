"""
URL patterns for inventory app.
"""

from django.urls import path

from apps.inventory import views

app_name = "inventory"

urlpatterns = [
    # Catalogue
    path("products/", views.ProductListView.as_view(), name="product_list"),
    path("products/<uuid:product_id>/", views.product_detail, name="product_detail"),
    path("stores/", views.StoreListView.as_view(), name="store_list"),
    path("my-bars/", views.MyBarsView.as_view(), name="my_bars"),
    # Store stock
    path(
        "stores/<uuid:store_id>/inventory/",
        views.StoreInventoryView.as_view(),
        name="store_inventory",
    ),
    path("stores/<uuid:store_id>/bars/", views.StoreBarListView.as_view(), name="store_bars"),
    path(
        "stores/<uuid:store_id>/bars/<str:serial_number>/",
        views.bar_detail,
        name="bar_detail",
    ),
    # Inventory transfers
    path(
        "stores/<uuid:store_id>/inventory-transfers/",
        views.TransferListCreateView.as_view(),
        name="transfer_list",
    ),
    path(
        "stores/<uuid:store_id>/inventory-transfers/<uuid:transfer_id>/",
        views.transfer_detail,
        name="transfer_detail",
    ),
    path(
        "stores/<uuid:store_id>/inventory-transfers/<uuid:transfer_id>/approve/",
        views.approve_transfer,
        name="transfer_approve",
    ),
    path(
        "stores/<uuid:store_id>/inventory-transfers/<uuid:transfer_id>/reject/",
        views.reject_transfer,
        name="transfer_reject",
    ),
    path(
        "stores/<uuid:store_id>/inventory-transfers/<uuid:transfer_id>/ship/",
        views.ship_transfer,
        name="transfer_ship",
    ),
    path(
        "stores/<uuid:store_id>/inventory-transfers/<uuid:transfer_id>/receive/",
        views.receive_transfer,
        name="transfer_receive",
    ),
    path(
        "stores/<uuid:store_id>/inventory-transfers/<uuid:transfer_id>/cancel/",
        views.cancel_transfer,
        name="transfer_cancel",
    ),
]
