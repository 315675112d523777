"""
Allowed file types and size limits per order file category.
"""
import mimetypes

from apps.files.models import FileCategoryChoices

MB = 1024 * 1024

SCAN_EXTENSIONS = ['stl', 'ply']
IMAGE_EXTENSIONS = ['jpg', 'jpeg', 'png', 'webp', 'heic', 'heif']
DOCUMENT_EXTENSIONS = ['pdf']

CATEGORY_RULES = {
    FileCategoryChoices.SCAN_UPPER: {'extensions': SCAN_EXTENSIONS, 'max_size': 50 * MB},
    FileCategoryChoices.SCAN_LOWER: {'extensions': SCAN_EXTENSIONS, 'max_size': 50 * MB},
    FileCategoryChoices.MOUTH_PHOTO: {'extensions': IMAGE_EXTENSIONS, 'max_size': 10 * MB},
    FileCategoryChoices.OTHER: {
        'extensions': SCAN_EXTENSIONS + IMAGE_EXTENSIONS + DOCUMENT_EXTENSIONS,
        'max_size': 25 * MB,
    },
}

# Browsers and mimetypes do not agree on 3D scan and HEIC types
MIME_FALLBACKS = {
    'stl': 'model/stl',
    'ply': 'application/ply',
    'heic': 'image/heic',
    'heif': 'image/heif',
    'webp': 'image/webp',
}


class FileValidationError(Exception):
    """Raised when a file does not fit its category."""
    pass


def get_extension(filename):
    """Lowercase extension without the dot ('' when there is none)."""
    if not filename or '.' not in filename:
        return ''
    return filename.rsplit('.', 1)[-1].lower()


def resolve_mime_type(filename, declared=None):
    """
    MIME type for a file.

    A specific declared type wins; generic ones fall back to the extension.
    """
    if declared and declared not in ('application/octet-stream', 'binary/octet-stream'):
        return declared
    extension = get_extension(filename)
    if extension in MIME_FALLBACKS:
        return MIME_FALLBACKS[extension]
    guessed, _ = mimetypes.guess_type(filename)
    return guessed or 'application/octet-stream'


def validate_upload(category, filename, size):
    """
    Validate category, extension and size.

    Returns:
        The lowercase extension

    Raises:
        FileValidationError: with a user-facing message
    """
    rules = CATEGORY_RULES.get(category)
    if rules is None:
        valid = ', '.join(choice[0] for choice in FileCategoryChoices.choices)
        raise FileValidationError(f'Categoría inválida. Opciones: {valid}')

    extension = get_extension(filename)
    if extension not in rules['extensions']:
        raise FileValidationError(
            f'Tipo de archivo no permitido. Permitidos: {", ".join(rules["extensions"])}'
        )

    try:
        size = int(size)
    except (TypeError, ValueError):
        raise FileValidationError('Tamaño de archivo inválido')
    if size <= 0:
        raise FileValidationError('Tamaño de archivo inválido')
    if size > rules['max_size']:
        raise FileValidationError(
            f'El archivo supera el máximo de {rules["max_size"] // MB}MB'
        )

    return extension


def requires_processing(mime_type):
    """Images get a thumbnail; everything else is ready as uploaded."""
    return bool(mime_type) and mime_type.startswith('image/')
