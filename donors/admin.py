from django.contrib import admin
from .models import LocalBlob


@admin.register(LocalBlob)
class LocalBlobAdmin(admin.ModelAdmin):
    list_display    = ['key', 'size_display', 'updated_at']
    search_fields   = ['key']
    readonly_fields = ['updated_at']

    def size_display(self, obj):
        return f"{len(obj.value or '')} chars"
    size_display.short_description = 'Size'
