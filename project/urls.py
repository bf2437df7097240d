"""
URL configuration for the ValueXchange project.

    /api/auth/    accounts API (register, login, profile, password reset)
    /api/admin/   marketplace moderation API
    /api/         marketplace API (listings, bids, wishlist, conversations)
    /admin/       Django admin
"""
from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path('api/auth/', include(('accounts.urls', 'accounts'), namespace='accounts')),
    path('api/admin/', include(('marketplace.admin_urls', 'marketplace_admin'), namespace='marketplace_admin')),
    path('api/', include(('marketplace.urls', 'marketplace'), namespace='marketplace')),
    path('admin/', admin.site.urls),
]
