# Nombre de archivo: __init__.py
# Ubicación de archivo: core/utils/__init__.py
# Descripción: Utilidades compartidas (política horaria)
