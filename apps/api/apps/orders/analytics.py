"""
Lab analytics computed from submission audit entries.

A submission is a STATUS_CHANGE audit entry on an Order whose new value is
PENDING_REVIEW; its metadata carries ai_generated, teeth_count and case_type.
Everything is scoped to one laboratory.
"""
from collections import Counter
from datetime import timedelta

from django.db.models import Count
from django.db.models.functions import TruncDate
from django.utils import timezone

from apps.core.models import AuditActionChoices, AuditLog
from apps.orders.models import Order, OrderStatusChoices

DEFAULT_RANGE_DAYS = 30
TOP_DOCTORS = 10


def default_date_range(start_date=None, end_date=None):
    """Fill a missing bound: end defaults to now, start to 30 days before end."""
    end_date = end_date or timezone.now()
    start_date = start_date or end_date - timedelta(days=DEFAULT_RANGE_DAYS)
    return start_date, end_date


def _percentage(part, total):
    return round(part * 100 / total) if total else 0


def _transitions(laboratory_id, start_date, end_date, to_status):
    return AuditLog.objects.filter(
        action=AuditActionChoices.STATUS_CHANGE,
        entity_type='Order',
        new_value=to_status,
        order__clinic__laboratory_id=laboratory_id,
        created_at__gte=start_date,
        created_at__lte=end_date,
    )


def _submissions(laboratory_id, start_date, end_date):
    return _transitions(laboratory_id, start_date, end_date, OrderStatusChoices.PENDING_REVIEW)


def get_order_analytics(laboratory_id, start_date, end_date):
    """Totals, AI usage and case types of the orders submitted in the range."""
    ai_generated = 0
    total_teeth = 0
    by_case_type = Counter()

    metadata_rows = _submissions(laboratory_id, start_date, end_date).values_list('metadata', flat=True)
    total = 0
    for metadata in metadata_rows:
        total += 1
        metadata = metadata or {}
        if metadata.get('ai_generated') is True:
            ai_generated += 1
        if isinstance(metadata.get('teeth_count'), int):
            total_teeth += metadata['teeth_count']
        if isinstance(metadata.get('case_type'), str):
            by_case_type[metadata['case_type']] += 1

    return {
        'total_orders': total,
        'ai_generated_orders': ai_generated,
        'ai_percentage': _percentage(ai_generated, total),
        'average_teeth_per_order': round(total_teeth / total, 1) if total else 0,
        'orders_by_case_type': dict(by_case_type),
    }


def get_daily_order_stats(laboratory_id, start_date, end_date):
    """Submissions per day: [{'date', 'total', 'ai_generated'}] oldest first."""
    daily = {}
    rows = _submissions(laboratory_id, start_date, end_date).annotate(
        day=TruncDate('created_at')
    ).order_by('created_at').values_list('day', 'metadata')
    for day, metadata in rows:
        stats = daily.setdefault(day.isoformat(), {'total': 0, 'ai_generated': 0})
        stats['total'] += 1
        if (metadata or {}).get('ai_generated') is True:
            stats['ai_generated'] += 1
    return [{'date': date, **stats} for date, stats in daily.items()]


def get_doctor_stats(laboratory_id, start_date, end_date, limit=TOP_DOCTORS):
    """Doctors with the most submissions in the range."""
    rows = (
        _submissions(laboratory_id, start_date, end_date)
        .values('order__doctor_id', 'order__doctor__name', 'order__doctor__email')
        .annotate(submissions=Count('id'))
        .order_by('-submissions', 'order__doctor__name')[:limit]
    )
    return [
        {
            'doctor_id': str(row['order__doctor_id']),
            'doctor_name': row['order__doctor__name'] or row['order__doctor__email'],
            'submissions': row['submissions'],
        }
        for row in rows
    ]


def get_needs_info_stats(laboratory_id, start_date, end_date):
    """How often the lab had to ask for more information."""
    needs_info = _transitions(
        laboratory_id, start_date, end_date, OrderStatusChoices.NEEDS_INFO
    ).count()
    submissions = _submissions(laboratory_id, start_date, end_date).count()
    return {
        'needs_info_count': needs_info,
        'submissions': submissions,
        'needs_info_rate': _percentage(needs_info, submissions),
    }


def get_urgent_stats(laboratory_id, start_date, end_date):
    """Share of urgent orders among those submitted in the range."""
    orders = Order.objects.filter(
        clinic__laboratory_id=laboratory_id,
        submitted_at__gte=start_date,
        submitted_at__lte=end_date,
    )
    total = orders.count()
    urgent = orders.filter(is_urgent=True).count()
    return {
        'total_orders': total,
        'urgent_orders': urgent,
        'urgent_percentage': _percentage(urgent, total),
    }


def build_lab_analytics(laboratory_id, start_date=None, end_date=None, include_daily=False):
    """Full analytics payload for the lab-admin dashboard."""
    start_date, end_date = default_date_range(start_date, end_date)
    payload = {
        'analytics': get_order_analytics(laboratory_id, start_date, end_date),
        'doctor_stats': get_doctor_stats(laboratory_id, start_date, end_date),
        'needs_info_stats': get_needs_info_stats(laboratory_id, start_date, end_date),
        'urgent_stats': get_urgent_stats(laboratory_id, start_date, end_date),
        'date_range': {
            'start_date': start_date.isoformat(),
            'end_date': end_date.isoformat(),
        },
    }
    if include_daily:
        payload['daily'] = get_daily_order_stats(laboratory_id, start_date, end_date)
    return payload
