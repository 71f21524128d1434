# Nombre de archivo: __init__.py
# Ubicación de archivo: db/__init__.py
# Descripción: Paquete de persistencia (modelos, sesión, inicialización y migraciones)
