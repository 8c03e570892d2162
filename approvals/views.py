"""
Approvals API views - verification dashboard and listing moderation queue.
"""
import logging

from django.conf import settings
from django.http import Http404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAdminUser
from rest_framework.response import Response

from .client import get_client
from .entities import EntityType
from .exceptions import (
    ApprovalsError,
    DependencyConflict,
    NetworkFailure,
    UnknownServerError,
    ValidationFailure,
)
from .query import FilterState
from .selection import BulkActionCoordinator, discard_stored, load_selection, save_selection
from .serializers import (
    BulkActionSerializer,
    ReasonSerializer,
    SelectionSerializer,
    VerificationToggleSerializer,
)
from .services import (
    deactivate_entity,
    load_moderation_queue,
    load_verification_dashboard,
    safe_delete_entity,
    verify_entity,
)

logger = logging.getLogger(__name__)

VERIFICATION = 'verification'
MODERATION = 'moderation'
SCOPES = (VERIFICATION, MODERATION)


def error_response(error):
    """Map an approvals error to a response the front-end can show."""
    if isinstance(error, DependencyConflict):
        return Response(error.as_dict(), status=status.HTTP_409_CONFLICT)
    if isinstance(error, ValidationFailure):
        return Response({'error': error.message, 'field': error.field}, status=status.HTTP_400_BAD_REQUEST)
    if isinstance(error, NetworkFailure):
        return Response({'error': error.message, 'retry': True}, status=status.HTTP_503_SERVICE_UNAVAILABLE)
    if isinstance(error, UnknownServerError):
        return Response({'error': error.message}, status=status.HTTP_502_BAD_GATEWAY)
    return Response({'error': error.message}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


def _filter_state(scope, params):
    if scope == MODERATION:
        return FilterState.from_query(
            params,
            page_size=getattr(settings, 'MODERATION_PAGE_SIZE', 20),
            default_status='all',
        )
    return FilterState.from_query(params)


def _load(scope, client, filter_state, selection, params):
    if scope == MODERATION:
        return load_moderation_queue(client, filter_state, selection=selection)
    return load_verification_dashboard(
        client,
        filter_state,
        selection=selection,
        sort_by=params.get('sort_by'),
        sort_order=params.get('sort_order'),
    )


def _check_scope(scope):
    if scope not in SCOPES:
        raise Http404(f'Unknown dashboard: {scope}')


def _dashboard(request, scope):
    filter_state = _filter_state(scope, request.query_params)
    selection = load_selection(request.session, scope)

    result = _load(scope, get_client(), filter_state, selection, request.query_params)

    # Write back only the pruned keys; a full save would undo selection
    # changes made while the collections were loading
    if result.pruned:
        selection = discard_stored(request.session, scope, result.pruned)
    return Response(result.as_dict(selection))


# ============ Dashboards ============

@api_view(['GET'])
@permission_classes([IsAdminUser])
def verification_dashboard(request):
    """Vendors and restaurants awaiting (or past) verification."""
    return _dashboard(request, VERIFICATION)


@api_view(['GET'])
@permission_classes([IsAdminUser])
def moderation_queue(request):
    """Listings awaiting moderation."""
    return _dashboard(request, MODERATION)


# ============ Selection & bulk actions ============

@api_view(['POST'])
@permission_classes([IsAdminUser])
def update_selection(request, scope):
    """
    Toggle, add, remove or clear selected items. ``select_page`` adds
    every row on the dashboard page described by the query string.
    """
    _check_scope(scope)
    serializer = SelectionSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    op = serializer.validated_data['op']
    keys = serializer.validated_data['keys']
    selection = load_selection(request.session, scope)

    if op == 'clear':
        selection.clear()
    elif op == 'select_page':
        filter_state = _filter_state(scope, request.query_params)
        result = _load(scope, get_client(), filter_state, selection, request.query_params)
        selection.select_all(result.page.items)
    for key in keys:
        if op == 'toggle':
            selection.toggle(key)
        elif op == 'add':
            selection.add(key)
        elif op == 'remove':
            selection.discard(key)

    save_selection(request.session, scope, selection)
    return Response({
        'selection': selection.to_session(),
        'count': len(selection),
    })


@api_view(['POST'])
@permission_classes([IsAdminUser])
def bulk_action(request, scope):
    """
    Apply one action to every selected item.

    The selection is cleared once the action completes, successful or
    not. On success the dashboard is reloaded with the filters in the
    query string and returned alongside the result.
    """
    _check_scope(scope)
    serializer = BulkActionSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    client = get_client()
    selection = load_selection(request.session, scope)
    refreshed = {}

    def refetch():
        filter_state = _filter_state(scope, request.query_params)
        refreshed['dashboard'] = _load(scope, client, filter_state, selection, request.query_params)

    coordinator = BulkActionCoordinator(client, selection, refetch=refetch)
    try:
        result = coordinator.submit(
            data['action'],
            reason=data.get('reason'),
            severity=data.get('severity'),
            notes=data.get('notes'),
        )
    except ApprovalsError as e:
        logger.warning(f"Bulk {data['action']} on {scope} failed: {e.message}")
        return error_response(e)
    finally:
        save_selection(request.session, scope, selection)
        # SessionMiddleware does not save on 5xx responses
        request.session.save()

    body = {
        'message': f"{result.updated} item(s) updated.",
        'result': result.as_dict(),
    }
    if result.blocked:
        body['message'] += f" {len(result.blocked)} item(s) could not be deleted."
    if 'dashboard' in refreshed:
        body['dashboard'] = refreshed['dashboard'].as_dict(selection)
    return Response(body)


# ============ Single-entity actions ============

@api_view(['POST'])
@permission_classes([IsAdminUser])
def toggle_verification(request, entity_type, entity_id):
    """Approve or revoke verification for one vendor or restaurant."""
    serializer = VerificationToggleSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        record = verify_entity(
            get_client(),
            entity_type,
            entity_id,
            serializer.validated_data['isVerified'],
            serializer.validated_data['reason'],
        )
    except ApprovalsError as e:
        return error_response(e)

    return Response({
        'message': 'Verification status updated.',
        'record': record,
    })


@api_view(['POST'])
@permission_classes([IsAdminUser])
def deactivate(request, entity_type, entity_id):
    """Deactivate a vendor or restaurant (reason required)."""
    serializer = ReasonSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        record = deactivate_entity(get_client(), entity_type, entity_id, serializer.validated_data['reason'])
    except ApprovalsError as e:
        return error_response(e)

    return Response({'message': 'Deactivated successfully.', 'record': record})


@api_view(['POST'])
@permission_classes([IsAdminUser])
def safe_delete(request, entity_type, entity_id):
    """Delete a vendor or restaurant unless something still depends on it."""
    serializer = ReasonSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        result = safe_delete_entity(get_client(), entity_type, entity_id, serializer.validated_data['reason'])
    except ApprovalsError as e:
        return error_response(e)

    # The record is gone; it can't stay selected anywhere
    key = (EntityType(entity_type).value, entity_id)
    for scope in SCOPES:
        selection = load_selection(request.session, scope)
        if key in selection:
            selection.discard(key)
            save_selection(request.session, scope, selection)

    return Response({'message': 'Deleted successfully.', 'result': result})
