"""
HealthSync Compliance Core

The compliance and audit core of the HealthSync patient portal:
- Versioned field-level encryption
- Structured audit logging with legal retention
- Business Associate Agreement lifecycle
- Compliance reporting and risk scoring
"""

__version__ = "0.1.0"
__author__ = "HealthSync Team"
