"""Exceptions levées par le flou distribué."""


class BlurError(Exception):
    """Erreur de base du paquet."""


class ImageValidationError(BlurError):
    """Géométrie ou taille de tampon invalide (détectée avant toute répartition)."""


class CommunicationError(BlurError):
    """Une opération collective ou un échange de halos n'a pas abouti. Fatale."""
