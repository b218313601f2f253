"""Internal constants shared across the library."""

DAY_MS = 24 * 60 * 60 * 1000

# Epoch values below this are seconds, not milliseconds.
SECONDS_THRESHOLD = 1_000_000_000_000

TARGA_PLACEHOLDER = "TARGA NON DISPONIBILE"
NAME_PLACEHOLDER = "Nome non disponibile"
DATE_PLACEHOLDER = "Data non disponibile"
SUBTITLE_PLACEHOLDER = "Dettaglio non disponibile"
PREVIOUS_UNAVAILABLE = "precedente non disponibile"

# Badge key used to group name-only matches that carry no badge at all.
NO_BADGE_KEY = "__no_badge__"

# ------------------------------------------------------------------
# Storage keys (defaults; see pyflotta.config.StorageKeys)
# ------------------------------------------------------------------

KEY_SESSIONS = "@autisti_sessione_attive"
KEY_REPORTS = "@segnalazioni_autisti_tmp"
KEY_CHECKS = "@controlli_mezzo_autisti"
KEY_REFUELS = "@rifornimenti_autisti_tmp"
KEY_REQUESTS = "@richieste_attrezzature_autisti_tmp"
KEY_TIRE_DRAFTS = "@cambi_gomme_autisti_tmp"
KEY_TIRE_EVENTS = "@gomme_eventi"
KEY_VEHICLES = "@mezzi_aziendali"
KEY_HISTORY = "@storico_eventi_operativi"
KEY_UNHOOKS = "@storico_sganci_rimorchi"
KEY_MOTRICE_CHANGES = "@storico_cambi_motrice"
KEY_ALERTS_STATE = "@alerts_state"
