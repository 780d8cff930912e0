"""PharmaSync - session gating and notification sync for the pharmacy marketplace client"""

__version__ = "1.0.0"
