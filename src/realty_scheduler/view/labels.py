"""Spanish and English display labels."""

from ..scheduling.models import AppointmentMode, AppointmentStatus, ReminderPriority, ReminderType
from ..scheduling.slot_planner import ValidationFailure

STATUS_LABELS = {
    AppointmentStatus.PENDING: {"es": "Pendiente", "en": "Pending"},
    AppointmentStatus.CONFIRMED: {"es": "Confirmada", "en": "Confirmed"},
    AppointmentStatus.COMPLETED: {"es": "Completada", "en": "Completed"},
    AppointmentStatus.CANCELLED: {"es": "Cancelada", "en": "Cancelled"},
}

MODE_LABELS = {
    AppointmentMode.INDIVIDUAL: {"es": "Cita Individual", "en": "Individual Appointment"},
    AppointmentMode.TOUR: {"es": "Tour de Propiedades", "en": "Property Tour"},
}

PRIORITY_LABELS = {
    ReminderPriority.LOW: {"es": "Baja", "en": "Low"},
    ReminderPriority.MEDIUM: {"es": "Media", "en": "Medium"},
    ReminderPriority.HIGH: {"es": "Alta", "en": "High"},
    ReminderPriority.URGENT: {"es": "Urgente", "en": "Urgent"},
}

REMINDER_TYPE_LABELS = {
    ReminderType.FOLLOW_UP: {"es": "Seguimiento", "en": "Follow-up"},
    ReminderType.CALL: {"es": "Llamar", "en": "Call"},
    ReminderType.WHATSAPP: {"es": "WhatsApp", "en": "WhatsApp"},
    ReminderType.EMAIL: {"es": "Correo", "en": "Email"},
    ReminderType.MEETING: {"es": "Reunión", "en": "Meeting"},
    ReminderType.DOCUMENT: {"es": "Documento", "en": "Document"},
    ReminderType.OTHER: {"es": "Otro", "en": "Other"},
}

_VALIDATION_ES = {
    ValidationFailure.MISSING_LEAD: "Selecciona un lead",
    ValidationFailure.MISSING_UNIT: "Selecciona una propiedad",
    ValidationFailure.EMPTY_TOUR: "Agrega al menos una propiedad al tour",
    ValidationFailure.INCOMPLETE_TOUR_STOP: "Cada parada necesita condominio y unidad",
    ValidationFailure.DUPLICATE_TOUR_UNIT: "Unidad duplicada en el tour",
    ValidationFailure.INVALID_TIME: "Selecciona una fecha y hora válidas",
}

# English text is the failure's own message
VALIDATION_LABELS = {
    failure: {"es": spanish, "en": failure.message}
    for failure, spanish in _VALIDATION_ES.items()
}

MESSAGES = {
    "appointment_created": {"es": "Cita creada", "en": "Appointment created"},
    "create_failed": {"es": "Error al crear cita", "en": "Error creating appointment"},
    "appointment_cancelled": {"es": "Cita cancelada", "en": "Appointment cancelled"},
    "cancel_failed": {"es": "Error al cancelar", "en": "Error cancelling"},
    "max_tour_stops": {"es": "Máximo 3 propiedades", "en": "Maximum 3 properties"},
    "load_failed": {"es": "No se pudieron cargar los datos", "en": "Could not load data"},
    "submit_in_progress": {"es": "Guardando...", "en": "Saving..."},
    "limited_view": {"es": "Vista limitada", "en": "Limited view"},
    "select_day": {"es": "Selecciona un día", "en": "Select a day"},
    "no_items": {"es": "Sin citas para este día", "en": "No appointments for this day"},
    "appointments": {"es": "citas", "en": "appointments"},
    "reminders": {"es": "Recordatorios", "en": "Reminders"},
    "confirm_cancel": {
        "es": "¿Estás seguro de que deseas cancelar esta cita?",
        "en": "Are you sure you want to cancel this appointment?",
    },
    "cancel_action": {"es": "Cancelar Cita", "en": "Cancel Appointment"},
    "unit": {"es": "Unidad", "en": "Unit"},
    "overlap_warning": {
        "es": "Ya hay citas en este horario",
        "en": "There are appointments in this time slot",
    },
}

WEEKDAYS = {
    "es": ["Dom", "Lun", "Mar", "Mié", "Jue", "Vie", "Sáb"],
    "en": ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"],
}

MONTHS = {
    "es": ["enero", "febrero", "marzo", "abril", "mayo", "junio", "julio",
           "agosto", "septiembre", "octubre", "noviembre", "diciembre"],
    "en": ["January", "February", "March", "April", "May", "June", "July",
           "August", "September", "October", "November", "December"],
}


def label(table: dict, key, language: str = "es") -> str:
    """Look up a label, falling back to Spanish."""
    entry = table.get(key, {})
    return entry.get(language) or entry.get("es", str(key))


def message(key: str, language: str = "es") -> str:
    return label(MESSAGES, key, language)
