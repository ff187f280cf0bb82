"""System checks for django-tripops."""

from django.core.checks import Error, register

from . import phases


@register()
def check_phase_graph(app_configs=None, **kwargs):
    """Fail startup when the trip phase graph is not a forward chain."""
    messages = phases.validate_phase_graph(
        phases.PHASE_ORDER,
        phases.PHASE_TRANSITIONS,
        phases.INITIAL_PHASE,
        phases.TERMINAL_PHASES,
    )
    return [
        Error(f"Invalid trip phase graph: {message}", id="django_tripops.E001")
        for message in messages
    ]
