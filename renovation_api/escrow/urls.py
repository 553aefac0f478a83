from django.urls import path

from . import views

urlpatterns = [
    path("", views.EscrowListCreateView.as_view(), name="escrow-list"),
    path("quote/", views.DepositQuoteView.as_view(), name="escrow-quote"),
    path("code/<str:code>/", views.EscrowByCodeView.as_view(), name="escrow-by-code"),
    path("<int:pk>/", views.EscrowDetailView.as_view(), name="escrow-detail"),
    path("<int:pk>/confirm/", views.EscrowConfirmView.as_view(), name="escrow-confirm"),
    path("<int:pk>/release-partial/", views.EscrowPartialReleaseView.as_view(), name="escrow-release-partial"),
    path("<int:pk>/release/", views.EscrowReleaseView.as_view(), name="escrow-release"),
    path("<int:pk>/refund/", views.EscrowRefundView.as_view(), name="escrow-refund"),
    path("<int:pk>/cancel/", views.EscrowCancelView.as_view(), name="escrow-cancel"),
]
