# api/urls.py - COMPLETE URL CONFIGURATION

from django.urls import path
from . import views

app_name = 'api'

urlpatterns = [
    path('donors/', views.donor_list, name='donor-list'),
    path('donors/<str:donor_id>/', views.donor_detail, name='donor-detail'),
    path('donors/<str:donor_id>/donated/', views.mark_donated, name='donor-donated'),

    path('groups/', views.group_list, name='group-list'),
    path('groups/<str:group_id>/', views.group_detail, name='group-detail'),

    path('compatibility/<str:blood_group>/', views.compatibility, name='compatibility'),
    path('stats/', views.dashboard_stats, name='dashboard-stats'),

    path('cloud-config/', views.cloud_config, name='cloud-config'),
    path('sync/', views.cloud_sync, name='cloud-sync'),

    path('export/', views.export_directory, name='export'),
    path('import/', views.import_directory, name='import'),

    path('assistant/', views.assistant, name='assistant'),
]

# Available endpoints:
# GET    /api/donors/?search=&blood_group=&group=&sort=   - Directory query
# POST   /api/donors/                                     - Register donor
# PUT    /api/donors/{id}/                                - Edit donor
# DELETE /api/donors/{id}/                                - Delete donor
# POST   /api/donors/{id}/donated/                        - Mark donated now
#
# GET    /api/groups/  POST /api/groups/  DELETE /api/groups/{id}/
#
# GET    /api/compatibility/{blood_group}/                - Compatibility entry
# GET    /api/stats/                                      - Distribution & eligibility counts
#
# GET    /api/cloud-config/  PUT /api/cloud-config/       - Cloud settings
# POST   /api/sync/[?wait=1]                              - Push local data to cloud
#
# GET    /api/export/   POST /api/import/?mode=overwrite|append
# POST   /api/assistant/                                  - Ask the assistant
