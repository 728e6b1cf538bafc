from django.urls import path

from ev_trip_planner import views

urlpatterns = [
    path("api/v1/health", views.health_view, name="health"),
    path("api/v1/locations/search", views.location_search_view, name="location-search"),
    path("api/v1/locations/reverse", views.location_reverse_view, name="location-reverse"),
    path("api/v1/trip-plan", views.trip_plan_view, name="trip-plan"),
]
