"""
Static vocabulary: known header aliases per canonical field, header keyword
patterns for the fallback passes, and the multilingual status table.

Aliases are written the way they show up in real exports; they are
normalised with text.normalize_text at comparison time, exactly like the
live headers.
"""

from __future__ import annotations

import re

from convo_ingest.models import ConversationStatus

CUSTOMER_NAME = "customer_name"
CUSTOMER_PHONE = "customer_phone"
START_DATE = "start_date"
STATUS = "status"
TOTAL_MESSAGES = "total_messages"
LAST_MESSAGE = "last_message"
ASSIGNED_AGENT = "assigned_agent"
END_DATE = "end_date"
RESPONSE_TIME = "response_time"
SATISFACTION = "satisfaction"
PURCHASE_VALUE = "purchase_value"

# Lexicon pass order; a field earlier in the list wins a contested column.
FIELD_PRIORITY = (
    CUSTOMER_NAME,
    CUSTOMER_PHONE,
    START_DATE,
    STATUS,
    TOTAL_MESSAGES,
    LAST_MESSAGE,
    ASSIGNED_AGENT,
)
SUPPLEMENTARY_FIELDS = (
    END_DATE,
    RESPONSE_TIME,
    SATISFACTION,
    PURCHASE_VALUE,
)
CANONICAL_FIELDS = FIELD_PRIORITY + SUPPLEMENTARY_FIELDS

COLUMN_ALIASES: dict[str, tuple[str, ...]] = {
    CUSTOMER_NAME: (
        "cliente", "nombre", "nombre_cliente", "nombre completo", "usuario", "contacto",
        "customer", "customer_name", "client", "name", "full name", "contact",
        "nome", "nome_cliente", "nome completo",
    ),
    CUSTOMER_PHONE: (
        "telefono", "teléfono", "celular", "cel", "movil", "móvil", "whatsapp",
        "numero_telefono", "numero_celular", "tel",
        "phone", "phone_number", "mobile",
        "telefone", "número de telefone",
    ),
    START_DATE: (
        "fecha", "fecha_inicio", "fecha de inicio", "fecha_creacion", "inicio",
        "date", "start_date", "timestamp", "created_at", "started",
        "data", "data_inicio", "data de início",
    ),
    STATUS: (
        "estado", "estado_conversacion", "situacion",
        "status", "state",
        "situação",
    ),
    TOTAL_MESSAGES: (
        "mensajes", "total_mensajes", "cantidad_mensajes", "num_mensajes",
        "messages", "total_messages", "message_count",
        "mensagens", "total_mensagens",
    ),
    LAST_MESSAGE: (
        "ultimo_mensaje", "último mensaje", "mensaje_final", "mensaje", "comentario", "conversacion",
        "last_message", "message", "conversation",
        "ultima_mensagem", "mensagem",
    ),
    ASSIGNED_AGENT: (
        "agente", "asesor", "vendedor", "ejecutivo", "responsable",
        "agent", "assigned_agent", "seller",
        "atendente", "consultor",
    ),
    END_DATE: (
        "fecha_fin", "fecha_final", "fecha_cierre",
        "end_date", "closed_at",
        "data_fim",
    ),
    RESPONSE_TIME: (
        "tiempo_respuesta", "tiempo", "response_time", "tempo_resposta",
    ),
    SATISFACTION: (
        "satisfaccion", "calificacion", "puntuacion",
        "satisfaction", "rating",
        "satisfação", "avaliação",
    ),
    PURCHASE_VALUE: (
        "valor_compra", "monto", "importe", "venta",
        "purchase_value", "amount", "total",
        "valor",
    ),
}

# Pattern pass: header keywords tried when the lexicon found nothing.
HEADER_PATTERNS: dict[str, re.Pattern[str]] = {
    CUSTOMER_NAME: re.compile(r"nom|client|usuario|person|contact|customer|name"),
    CUSTOMER_PHONE: re.compile(r"tel|phone|fone|cel|whats|numero|mobil|movil"),
    START_DATE: re.compile(r"fecha|date|time|dia|day|data|hora"),
}

# Tokens that make a header look like a date column in the positional pass.
DATE_HEADER_TOKENS = ("fecha", "date", "dia", "day", "data", "time", "hora")

# Keyword sweep over whatever is still unassigned.
SWEEP_KEYWORDS: dict[str, tuple[str, ...]] = {
    STATUS: ("estado", "status", "stat", "situac"),
    LAST_MESSAGE: ("mensaj", "messag", "mensag", "msg", "texto", "coment"),
    ASSIGNED_AGENT: ("agent", "vendedor", "asesor", "atend", "ejecutiv", "operador"),
}

# Keys are lower-case and accent-free; see coercion.parse_status.
STATUS_MAP: dict[str, ConversationStatus] = {
    "activo": ConversationStatus.ACTIVE,
    "activa": ConversationStatus.ACTIVE,
    "en curso": ConversationStatus.ACTIVE,
    "abierto": ConversationStatus.ACTIVE,
    "active": ConversationStatus.ACTIVE,
    "open": ConversationStatus.ACTIVE,
    "in progress": ConversationStatus.ACTIVE,
    "ativo": ConversationStatus.ACTIVE,
    "em andamento": ConversationStatus.ACTIVE,
    "completado": ConversationStatus.COMPLETED,
    "completada": ConversationStatus.COMPLETED,
    "finalizado": ConversationStatus.COMPLETED,
    "finalizada": ConversationStatus.COMPLETED,
    "cerrado": ConversationStatus.COMPLETED,
    "resuelto": ConversationStatus.COMPLETED,
    "completed": ConversationStatus.COMPLETED,
    "complete": ConversationStatus.COMPLETED,
    "closed": ConversationStatus.COMPLETED,
    "resolved": ConversationStatus.COMPLETED,
    "done": ConversationStatus.COMPLETED,
    "concluido": ConversationStatus.COMPLETED,
    "concluida": ConversationStatus.COMPLETED,
    "fechado": ConversationStatus.COMPLETED,
    "abandonado": ConversationStatus.ABANDONED,
    "abandonada": ConversationStatus.ABANDONED,
    "cancelado": ConversationStatus.ABANDONED,
    "perdido": ConversationStatus.ABANDONED,
    "abandoned": ConversationStatus.ABANDONED,
    "cancelled": ConversationStatus.ABANDONED,
    "canceled": ConversationStatus.ABANDONED,
    "lost": ConversationStatus.ABANDONED,
    "pendiente": ConversationStatus.PENDING,
    "en espera": ConversationStatus.PENDING,
    "pending": ConversationStatus.PENDING,
    "waiting": ConversationStatus.PENDING,
    "pendente": ConversationStatus.PENDING,
    "aguardando": ConversationStatus.PENDING,
}

# Spanish, English and Portuguese month names and abbreviations.
MONTH_NAMES: dict[str, int] = {
    "enero": 1, "febrero": 2, "marzo": 3, "abril": 4, "mayo": 5, "junio": 6,
    "julio": 7, "agosto": 8, "septiembre": 9, "setiembre": 9, "octubre": 10,
    "noviembre": 11, "diciembre": 12,
    "ene": 1, "feb": 2, "mar": 3, "abr": 4, "may": 5, "jun": 6, "jul": 7,
    "ago": 8, "sep": 9, "set": 9, "oct": 10, "nov": 11, "dic": 12,
    "january": 1, "february": 2, "march": 3, "april": 4, "june": 6,
    "july": 7, "august": 8, "september": 9, "october": 10, "november": 11,
    "december": 12,
    "jan": 1, "apr": 4, "aug": 8, "dec": 12,
    "janeiro": 1, "fevereiro": 2, "marco": 3, "maio": 5, "junho": 6,
    "julho": 7, "setembro": 9, "outubro": 10, "novembro": 11, "dezembro": 12,
    "fev": 2, "out": 10, "dez": 12,
}
