"""
Write side of the question bank, used by the import pipeline.

Records are keyed by a content hash so re-running an import updates rows in
place instead of duplicating them. Parsing spreadsheets is the importer's job;
this module only receives already-extracted values.
"""
import hashlib
import logging

from django.db import transaction

from .models import MedicalRecord, RecordCode

logger = logging.getLogger(__name__)

UID_FIELDS = ('patient_name', 'age', 'gender', 'chief_complaints', 'case_description')


def _clean(value):
    return str(value if value is not None else '').strip()


def compute_source_uid(category_id, fields: dict) -> str:
    """Stable sha256 over the category and the case fields of one record."""
    payload = '|'.join([str(category_id), *(_clean(fields.get(name)) for name in UID_FIELDS)])
    return hashlib.sha256(payload.encode('utf-8')).hexdigest()


def upsert_record(category, fields: dict, codes=()):
    """
    Create or update a record and its answer codes.

    ``codes`` is an iterable of dicts with ``code`` and optional ``description``,
    ``comment_wrong``, ``comment_missing``. Codes are stored uppercase and get a
    sort order matching their position. Returns ``(record, created)``.
    """
    uid = compute_source_uid(category.id, fields)
    defaults = {name: (fields.get(name) or None) for name in UID_FIELDS}
    if 'difficulty_level' in fields and fields['difficulty_level']:
        defaults['difficulty_level'] = int(fields['difficulty_level'])
    defaults.update({'category': category, 'is_active': True})

    with transaction.atomic():
        record, created = MedicalRecord.objects.update_or_create(source_uid=uid, defaults=defaults)
        sort_order = 1
        for entry in codes:
            code = _clean(entry.get('code')).upper()
            if not code:
                continue
            RecordCode.objects.update_or_create(
                record=record,
                code=code,
                defaults={
                    'description': entry.get('description') or None,
                    'comment_wrong': entry.get('comment_wrong') or None,
                    'comment_missing': entry.get('comment_missing') or None,
                    'is_required': entry.get('is_required', True),
                    'sort_order': sort_order,
                },
            )
            sort_order += 1
    return record, created


def deactivate_missing(category, seen_uids) -> int:
    """Deactivate records of ``category`` whose uid was not seen in the latest import."""
    count = (
        MedicalRecord.objects.filter(category=category, is_active=True)
        .exclude(source_uid__in=list(seen_uids))
        .update(is_active=False)
    )
    if count:
        logger.info('Deactivated %s record(s) missing from import of category %s', count, category.id)
    return count
