"""
Email Dispatcher Step

Recipient resolution, template rendering and transport hand-off.
"""

from .main import EmailDispatcherStep
from .template_renderer import extract_variables, render, render_with_report

__all__ = ["EmailDispatcherStep", "extract_variables", "render", "render_with_report"]
