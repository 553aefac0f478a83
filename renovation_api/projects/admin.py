from django.contrib import admin

from .models import Bid, BiddingSettings, Project


@admin.register(Project)
class ProjectAdmin(admin.ModelAdmin):
    list_display = ('id', 'title', 'owner', 'status', 'created_at')
    list_filter = ('status',)
    search_fields = ('title', 'owner__email')


@admin.register(Bid)
class BidAdmin(admin.ModelAdmin):
    list_display = ('id', 'project', 'contractor', 'price', 'status', 'submitted_at')
    list_filter = ('status',)
    search_fields = ('project__title', 'contractor__email')


@admin.register(BiddingSettings)
class BiddingSettingsAdmin(admin.ModelAdmin):
    list_display = ('id', 'escrow_percentage', 'escrow_min_amount', 'escrow_max_amount', 'updated_at')

    def has_add_permission(self, request):
        return not BiddingSettings.objects.exists()

    def has_delete_permission(self, request, obj=None):
        return False
