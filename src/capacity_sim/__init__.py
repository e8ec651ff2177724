"""Production capacity planning: pipeline simulation, forecasting and recommendations."""

__version__ = "0.1.0"
