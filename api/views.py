# api/views.py
"""
HTTP surface of the directory. Each request loads the directory through
the store chosen by the saved cloud configuration, then runs one
controller operation.
"""
import json
import logging
from functools import wraps

from django.http import HttpResponse
from rest_framework import status
from rest_framework.decorators import api_view
from rest_framework.response import Response

from algorithms.blood_compatibility import get_compatibility, is_valid_blood_group
from algorithms.directory import DirectoryFilter, directory_summary
from algorithms.eligibility import now_ms
from donors.assistant import DonorAssistant, GeminiCompletionService
from donors.exceptions import (
    BulkSyncError,
    ConnectivityError,
    RecordNotFound,
    RemoteStoreError,
    StoreError,
    SyncFailed,
)
from donors.serializers import cloud_config_from_data, cloud_config_to_data, group_to_data
from donors.storage import LocalStore, build_store, load_cloud_config, save_cloud_config
from donors.sync import DirectoryController
from donors.tasks import push_local_to_remote_task, run_cloud_sync
from donors.transfer import IMPORT_MODES, MODE_OVERWRITE, build_export_document, export_filename, import_document

from .serializers import (
    AssistantQuestionSerializer,
    DirectoryEntrySerializer,
    DirectoryQuerySerializer,
    GroupCreateSerializer,
)

logger = logging.getLogger(__name__)


def get_controller():
    """Controller bound to the currently configured store, loaded."""
    return DirectoryController(build_store(load_cloud_config())).refresh()


def get_completion_service():
    return GeminiCompletionService()


def store_error_response(error):
    if isinstance(error, SyncFailed):
        cause = error.cause
        operation = error.operation
    else:
        cause = error
        operation = getattr(error, 'operation', None)
    body = {'error': str(error), 'operation': operation}
    if isinstance(cause, RemoteStoreError):
        body['remote_status'] = cause.status_code
    return Response(body, status=status.HTTP_502_BAD_GATEWAY)


def handles_store_errors(view_func):
    """Turn persistence failures into visible 502 responses and unknown ids into 404s."""
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        try:
            return view_func(request, *args, **kwargs)
        except StoreError as e:
            return store_error_response(e)
        except RecordNotFound as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
    return wrapper


def _entry(donor, now):
    return DirectoryEntrySerializer(donor, context={'now': now}).data


# ============================================
# DONORS
# ============================================
@api_view(['GET', 'POST'])
@handles_store_errors
def donor_list(request):
    controller = get_controller()

    if request.method == 'POST':
        donor = controller.save_donor(request.data)
        return Response(_entry(donor, controller.clock()), status=status.HTTP_201_CREATED)

    params = DirectoryQuerySerializer(data=request.query_params)
    params.is_valid(raise_exception=True)
    directory_filter = DirectoryFilter(
        search_text=params.validated_data['search'],
        blood_group=params.validated_data['blood_group'],
        group_id=params.validated_data['group'],
        sort_by=params.validated_data['sort'],
    )
    now = controller.clock()
    donors = controller.query(directory_filter)
    return Response([_entry(d, now) for d in donors])


@api_view(['PUT', 'DELETE'])
@handles_store_errors
def donor_detail(request, donor_id):
    controller = get_controller()

    if request.method == 'DELETE':
        controller.delete_donor(donor_id)
        return Response(status=status.HTTP_204_NO_CONTENT)

    donor = controller.save_donor(request.data, donor_id=donor_id)
    return Response(_entry(donor, controller.clock()))


@api_view(['POST'])
@handles_store_errors
def mark_donated(request, donor_id):
    controller = get_controller()
    donor = controller.mark_donated(donor_id)
    return Response(_entry(donor, controller.clock()))


# ============================================
# GROUPS
# ============================================
@api_view(['GET', 'POST'])
@handles_store_errors
def group_list(request):
    controller = get_controller()

    if request.method == 'POST':
        serializer = GroupCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        group = controller.create_group(serializer.validated_data['name'])
        return Response(group_to_data(group), status=status.HTTP_201_CREATED)

    return Response([group_to_data(g) for g in controller.groups])


@api_view(['DELETE'])
@handles_store_errors
def group_detail(request, group_id):
    controller = get_controller()
    controller.delete_group(group_id)
    return Response(status=status.HTTP_204_NO_CONTENT)


# ============================================
# COMPATIBILITY & STATS
# ============================================
@api_view(['GET'])
def compatibility(request, blood_group):
    if not is_valid_blood_group(blood_group):
        return Response({'error': f'Unknown blood group: {blood_group}'}, status=status.HTTP_404_NOT_FOUND)
    entry = get_compatibility(blood_group)
    return Response({
        'bloodGroup': blood_group,
        'canDonateTo': list(entry['can_donate_to']),
        'canReceiveFrom': list(entry['can_receive_from']),
    })


@api_view(['GET'])
@handles_store_errors
def dashboard_stats(request):
    """Counts per blood group and eligibility"""
    controller = get_controller()
    return Response(directory_summary(controller.donors, controller.clock()))


# ============================================
# CLOUD SETTINGS & SYNC
# ============================================
@api_view(['GET', 'PUT'])
def cloud_config(request):
    if request.method == 'PUT':
        config = cloud_config_from_data(request.data)
        save_cloud_config(config)
    else:
        config = load_cloud_config()

    data = cloud_config_to_data(config)
    if data.get('supabaseKey'):
        data['supabaseKey'] = '•' * 8 + data['supabaseKey'][-4:]
    return Response(data)


@api_view(['POST'])
def cloud_sync(request):
    """
    Push local data to the cloud. Queued by default; ?wait=1 runs inline.
    """
    if request.query_params.get('wait') in ('1', 'true'):
        try:
            result = run_cloud_sync()
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        except BulkSyncError as e:
            return Response({
                'error': str(e),
                'groups_pushed': e.groups_pushed,
                'donors_pushed': e.donors_pushed,
            }, status=status.HTTP_502_BAD_GATEWAY)
        return Response(result)

    if not load_cloud_config().is_usable:
        return Response({'error': 'Cloud storage is not configured.'}, status=status.HTTP_400_BAD_REQUEST)
    task = push_local_to_remote_task.delay()
    return Response({'task_id': task.id}, status=status.HTTP_202_ACCEPTED)


# ============================================
# IMPORT / EXPORT
# ============================================
@api_view(['GET'])
@handles_store_errors
def export_directory(request):
    """Backup of whatever the active store (local or cloud) holds."""
    store = build_store(load_cloud_config())
    document = build_export_document(store.fetch_donors(), store.fetch_groups())
    response = HttpResponse(json.dumps(document, indent=2), content_type='application/json')
    response['Content-Disposition'] = f'attachment; filename="{export_filename()}"'
    return response


@api_view(['POST'])
def import_directory(request):
    mode = request.query_params.get('mode', MODE_OVERWRITE)
    if mode not in IMPORT_MODES:
        return Response({'error': f'mode must be one of {", ".join(IMPORT_MODES)}'},
                        status=status.HTTP_400_BAD_REQUEST)
    result = import_document(LocalStore(), request.data, mode=mode)
    return Response(result)


# ============================================
# ASSISTANT
# ============================================
@api_view(['POST'])
@handles_store_errors
def assistant(request):
    serializer = AssistantQuestionSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    controller = get_controller()

    bot = DonorAssistant(get_completion_service())
    try:
        reply = bot.ask(serializer.validated_data['question'], controller.donors, controller.clock())
    except ConnectivityError as e:
        logger.error(f"Assistant unavailable: {e}")
        return Response(
            {'error': 'Could not connect to AI assistant. Please check your API key.'},
            status=status.HTTP_503_SERVICE_UNAVAILABLE,
        )
    return Response({'role': 'model', 'text': reply})
