"""Weather fields, windows, caching, quality assessment and the Open-Meteo adapter."""
