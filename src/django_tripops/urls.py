"""URL patterns for django-tripops.

Include in your project:
    path("ops/", include("django_tripops.urls")),
"""

from django.urls import path

from . import views

app_name = "django_tripops"

urlpatterns = [
    path("trips/<int:trip_id>/readiness/", views.readiness, name="readiness"),
    path("trips/<int:trip_id>/risk-assessments/", views.risk_assessments, name="risk-assessments"),
    path(
        "trips/<int:trip_id>/risk-assessments/suggest/",
        views.suggest_risk_inputs,
        name="risk-assessments-suggest",
    ),
    path("trips/<int:trip_id>/start/", views.start, name="start"),
    path("trips/<int:trip_id>/completion/", views.completion, name="completion"),
    path("trips/<int:trip_id>/end/prepare/", views.prepare_end, name="end-prepare"),
    path("trips/<int:trip_id>/end/", views.end, name="end"),
    path(
        "trips/<int:trip_id>/checklist/<str:namespace>/<str:item_code>/",
        views.checklist_item,
        name="checklist-item",
    ),
    path("trips/<int:trip_id>/manifest/", views.manifest, name="manifest"),
    path("trips/<int:trip_id>/transitions/", views.transitions, name="transitions"),
]
