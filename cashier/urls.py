from django.urls import path

from . import views

urlpatterns = [
    # Health check
    path("", views.health, name="health"),

    # Payment sessions
    path("getSnapToken", views.get_snap_token, name="get_snap_token"),
    path("session", views.get_snap_token, name="session"),

    # Gateway notifications
    path("midtrans-notification", views.midtrans_notification, name="midtrans_notification"),
    path("webhook", views.midtrans_notification, name="webhook"),

    # Orders
    path("transactions/<str:order_id>", views.transaction_status, name="transaction_status"),

    # Inventory
    path("inventory/<str:item_id>/restock", views.restock, name="restock"),
]
