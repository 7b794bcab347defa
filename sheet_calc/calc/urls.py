from django.urls import path
from . import views

app_name = "calc"

urlpatterns = [
    path("evaluate/", views.evaluate, name="evaluate"),
    path("expand-range/", views.expand, name="expand_range"),
    path("recalculate/", views.recalculate_cells, name="recalculate"),
]
