"""
Human-friendly order numbers: CLINICCODE-INITIALS-NNN (e.g. SMILE-JD-001).
"""
import re

MAX_CLINIC_CODE_LENGTH = 8
MIN_CLINIC_CODE_LENGTH = 3
FALLBACK_CLINIC_CODE = 'CLINIC'
CLINIC_CODE_PAD_CHAR = 'X'

MAX_PATIENT_INITIALS_LENGTH = 3
MIN_PATIENT_INITIALS_LENGTH = 2
INITIALS_PAD_CHAR = 'X'

ORDER_NUMBER_DIGITS = 3


def generate_clinic_code(clinic_name):
    """
    "Smile Dental Clinic" -> "SMILE", "Dr. Li" -> "DRLI", "AB" -> "ABX".
    """
    cleaned = re.sub(r'[^A-Z\s]', '', (clinic_name or '').strip().upper())
    words = cleaned.split()
    if not words:
        return FALLBACK_CLINIC_CODE

    first = words[0][:MAX_CLINIC_CODE_LENGTH]
    if len(first) >= MIN_CLINIC_CODE_LENGTH:
        return first
    if len(words) > 1:
        return (first + words[1])[:MAX_CLINIC_CODE_LENGTH]
    return first.ljust(MIN_CLINIC_CODE_LENGTH, CLINIC_CODE_PAD_CHAR)


def extract_initials(patient_name):
    """
    "John Doe" -> "JD", "Anne-Marie Johnson" -> "AMJ", "Cher" -> "CX".
    """
    words = [w for w in re.split(r'[\s-]+', (patient_name or '').strip().upper()) if w]
    initials = ''.join(w[0] for w in words[:MAX_PATIENT_INITIALS_LENGTH])
    return initials.ljust(MIN_PATIENT_INITIALS_LENGTH, INITIALS_PAD_CHAR)


def format_order_number(clinic_name, patient_name, sequence):
    return '{}-{}-{}'.format(
        generate_clinic_code(clinic_name),
        extract_initials(patient_name),
        str(sequence).zfill(ORDER_NUMBER_DIGITS),
    )


def generate_order_number(clinic, patient_name):
    """
    Next order number for a clinic: its order count + 1.

    Clinics whose names share a code draw from the same number space, so the
    sequence is advanced past numbers another clinic already holds.
    """
    from apps.orders.models import Order

    sequence = Order.objects.filter(clinic=clinic).count() + 1
    order_number = format_order_number(clinic.name, patient_name, sequence)
    while Order.objects.filter(order_number=order_number).exists():
        sequence += 1
        order_number = format_order_number(clinic.name, patient_name, sequence)
    return order_number
