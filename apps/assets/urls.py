"""
URL patterns for assets app.
"""

from django.urls import path

from apps.assets import views

app_name = "assets"

urlpatterns = [
    # Customer assets
    path("assets/", views.OwnedAssetListView.as_view(), name="asset_list"),
    path("assets/purchase/", views.purchase, name="purchase"),
    path("assets/convert/", views.convert_to_physical, name="convert"),
    path("assets/transfers/", views.AssetTransferListView.as_view(), name="transfer_list"),
    path("assets/<uuid:asset_id>/", views.asset_detail, name="asset_detail"),
    path(
        "assets/<uuid:asset_id>/location-change/",
        views.request_location_change,
        name="request_location_change",
    ),
    path("invoices/", views.InvoiceListView.as_view(), name="invoice_list"),
    path("invoices/<uuid:invoice_id>/", views.invoice_detail, name="invoice_detail"),
    # Appointments
    path("appointments/", views.AppointmentListCreateView.as_view(), name="appointment_list"),
    path(
        "appointments/<uuid:appointment_id>/",
        views.appointment_detail,
        name="appointment_detail",
    ),
    path(
        "appointments/<uuid:appointment_id>/cancel/",
        views.cancel_appointment,
        name="cancel_appointment",
    ),
    # Store counter
    path(
        "stores/<uuid:store_id>/appointments/",
        views.StoreAppointmentListView.as_view(),
        name="store_appointments",
    ),
    path(
        "stores/<uuid:store_id>/appointments/lookup/",
        views.lookup_appointment,
        name="lookup_appointment",
    ),
    path(
        "stores/<uuid:store_id>/pickup-logs/",
        views.PickupLogListView.as_view(),
        name="pickup_logs",
    ),
    path(
        "stores/<uuid:store_id>/appointments/<uuid:appointment_id>/status/",
        views.update_appointment_status,
        name="store_appointment_status",
    ),
    path(
        "stores/<uuid:store_id>/appointments/<uuid:appointment_id>/handover/",
        views.handover,
        name="handover",
    ),
    path(
        "stores/<uuid:store_id>/location-requests/",
        views.LocationRequestListView.as_view(),
        name="location_requests",
    ),
    path(
        "stores/<uuid:store_id>/location-requests/<uuid:request_id>/approve/",
        views.approve_location_change,
        name="approve_location_change",
    ),
    path(
        "stores/<uuid:store_id>/location-requests/<uuid:request_id>/reject/",
        views.reject_location_change,
        name="reject_location_change",
    ),
    path(
        "stores/<uuid:store_id>/location-requests/<uuid:request_id>/complete/",
        views.complete_location_change,
        name="complete_location_change",
    ),
]
