"""
URL configuration for accounts, profiles, staff and announcements.
"""

from django.urls import path

from . import views

app_name = "core"

urlpatterns = [
    # Accounts
    path("auth/register/", views.RegisterView.as_view(), name="register"),
    path("auth/token/", views.CustomTokenObtainPairView.as_view(), name="token_obtain_pair"),
    path("profile/", views.ProfileView.as_view(), name="profile"),
    path("profiles/search/", views.search_profiles, name="profile_search"),
    path("my-stores/", views.MyStoresView.as_view(), name="my_stores"),
    # Staff
    path(
        "stores/<uuid:store_id>/staff/",
        views.StaffListCreateView.as_view(),
        name="staff_list",
    ),
    path(
        "stores/<uuid:store_id>/staff/<uuid:staff_id>/",
        views.StaffDetailView.as_view(),
        name="staff_detail",
    ),
    path(
        "stores/<uuid:store_id>/staff/<uuid:staff_id>/activity/",
        views.staff_activity,
        name="staff_activity",
    ),
    # Announcements
    path(
        "stores/<uuid:store_id>/announcements/",
        views.AnnouncementListCreateView.as_view(),
        name="announcement_list",
    ),
    path(
        "stores/<uuid:store_id>/announcements/active/",
        views.ActiveAnnouncementsView.as_view(),
        name="announcement_active",
    ),
    path(
        "stores/<uuid:store_id>/announcements/<uuid:announcement_id>/",
        views.AnnouncementDetailView.as_view(),
        name="announcement_detail",
    ),
]
