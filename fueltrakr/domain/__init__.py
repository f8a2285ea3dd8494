"""Domain Layer: models, errors, events, validation rules and ports.

Has no dependency on the infrastructure layer.
"""
