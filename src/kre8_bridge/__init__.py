"""
KRE8 Bridge - relais commandes/sessions entre le dashboard et les exécuteurs locaux.
"""

__version__ = "1.0.0"
