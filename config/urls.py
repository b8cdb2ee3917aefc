"""
-------------------------------------------------------------------------
System: CBMS (College Budget Management System)
Client: College Finance & Accounts Office
Team Lead: College IT Cell
Developers: CBMS Development Team
Description: Root URL configuration.
-------------------------------------------------------------------------
"""
from django.contrib import admin
from django.urls import path, include
from django.views.generic import RedirectView

urlpatterns = [
    path('admin/', admin.site.urls),
    path('core/', include('apps.core.urls')),
    path('budgeting/', include('apps.budgeting.urls')),
    path('expenditure/', include('apps.expenditure.urls')),
    path('reports/', include('apps.reporting.urls')),
    path('', RedirectView.as_view(url='/admin/', permanent=False), name='home'),
]
