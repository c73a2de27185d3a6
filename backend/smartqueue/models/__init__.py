# Database models
from smartqueue.models.eta_stats import EtaStatsRecord
from smartqueue.models.ticket_eta import TicketEtaRecord

__all__ = [
    "EtaStatsRecord",
    "TicketEtaRecord",
]
