from django.urls import path
from .views import (
    DriverProfileView,
    DriverStatusView,
    DriverLocationUpdateView,
    DriverStatsView,
    DriverEarningsView,
    DriverCurrentRideView,
    DriverRideHistoryView,
)

urlpatterns = [
    path("profile/", DriverProfileView.as_view(), name="driver-profile"),
    path("status/", DriverStatusView.as_view(), name="driver-status"),
    path("location/", DriverLocationUpdateView.as_view(), name="driver-location"),
    path("stats/", DriverStatsView.as_view(), name="driver-stats"),
    path("earnings/", DriverEarningsView.as_view(), name="driver-earnings"),
    path("current-ride/", DriverCurrentRideView.as_view(), name="driver-current-ride"),
    path("history/", DriverRideHistoryView.as_view(), name="driver-history"),
]
