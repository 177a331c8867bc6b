from django.urls import include, path

urlpatterns = [
    path("", include("cashier.urls")),
]
