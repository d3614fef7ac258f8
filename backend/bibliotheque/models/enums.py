"""
Enums utilisés par les modèles de l'application.
"""

import enum


class LoanStatus(str, enum.Enum):
    """
    Statut d'un emprunt.

    Transitions :
        ACTIVE -> RETURNED (retour)
        ACTIVE -> OVERDUE (échéance dépassée, constatée à la lecture)
        OVERDUE -> RETURNED (retour en retard)
    RETURNED est terminal.
    """
    ACTIVE = "ACTIVE"
    OVERDUE = "OVERDUE"
    RETURNED = "RETURNED"


# Un emprunt "en cours" : pas encore rendu, en retard ou non
OPEN_LOAN_STATUSES = (LoanStatus.ACTIVE, LoanStatus.OVERDUE)
