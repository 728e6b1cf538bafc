from django.urls import include, path

urlpatterns = [
    path("", include("ev_trip_planner.urls")),
]
