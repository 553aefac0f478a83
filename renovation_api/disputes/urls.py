from django.urls import path

from . import views

urlpatterns = [
    path(
        'projects/<int:project_id>/disputes/',
        views.RaiseDisputeAPIView.as_view(),
        name='project-disputes-create',
    ),
    path(
        'disputes/',
        views.ListDisputesAPIView.as_view(),
        name='disputes-list',
    ),
    path(
        'disputes/<int:id>/',
        views.RetrieveDisputeAPIView.as_view(),
        name='disputes-detail',
    ),
    path(
        'disputes/<int:id>/resolve/',
        views.ResolveDisputeAPIView.as_view(),
        name='disputes-resolve',
    ),
]
