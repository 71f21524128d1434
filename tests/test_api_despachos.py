# Nombre de archivo: test_api_despachos.py
# Ubicación de archivo: tests/test_api_despachos.py
# Descripción: Pruebas de los endpoints REST de despachos (contrato y flujo de punta a punta)

from __future__ import annotations

from core.despachos.broadcast import DespachoEvent


def _crear(client, **campos):
    payload = {"invoiceId": "F-1", "clientName": "Acme", "scheduledAt": "2024-05-01"}
    payload.update(campos)
    return client.post("/tickets", json=payload)


def test_flujo_cancelacion_de_punta_a_punta(client, context) -> None:
    eventos: list[DespachoEvent] = []
    context.broadcaster.add_listener(eventos.append)

    res = _crear(client, status="in_progress")
    assert res.status_code == 201
    creado = res.json()["data"]
    assert creado["status"] == "in_progress"
    assert creado["scheduledAt"] == "2024-05-01T00:00:00.000"
    ticket_id = creado["id"]

    res = client.patch(f"/tickets/{ticket_id}/status", json={"status": "cancelled"})
    assert res.status_code == 400
    assert res.json()["success"] is False
    assert client.get(f"/tickets/{ticket_id}").json()["data"]["status"] == "in_progress"

    res = client.patch(
        f"/tickets/{ticket_id}/status",
        json={"status": "cancelled", "cancellationReason": "client refused"},
    )
    assert res.status_code == 200
    cancelado = res.json()["data"]
    assert cancelado["status"] == "cancelled"
    assert cancelado["cancellationReason"] == "client refused"

    actualizados = [e for e in eventos if e.type == "ticket:updated"]
    assert len(actualizados) == 1
    assert actualizados[0].data == cancelado
    assert [e.type for e in eventos] == ["ticket:created", "ticket:updated"]


def test_crear_valida_campos_requeridos(client) -> None:
    res = client.post("/tickets", json={"clientName": "Acme"})
    assert res.status_code == 400
    body = res.json()
    assert body["success"] is False
    assert body["code"] == "VALIDATION_ERROR"
    assert "invoiceId" in body["error"] and "scheduledAt" in body["error"]


def test_crear_estado_invalido_y_duplicado(client) -> None:
    res = _crear(client, status="archivado")
    assert res.status_code == 400
    assert res.json()["code"] == "VALIDATION_ERROR"

    assert _crear(client).status_code == 201
    res = _crear(client, clientName="Otro")
    assert res.status_code == 400
    assert res.json() == {
        "success": False,
        "error": "Ya existe un despacho con este número de factura",
        "code": "DUPLICATE_INVOICE",
    }
    assert client.get("/tickets").json()["count"] == 1


def test_obtener_actualizar_y_eliminar(client) -> None:
    ticket_id = _crear(client, description="3 bultos").json()["data"]["id"]

    res = client.get(f"/tickets/{ticket_id}")
    assert res.status_code == 200
    previo = res.json()["data"]

    res = client.put(f"/tickets/{ticket_id}", json={"status": "completed", "notes": "entregado"})
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["status"] == "completed"
    assert data["notes"] == "entregado"
    assert data["description"] == "3 bultos"
    assert data["updatedAt"] > previo["updatedAt"]
    assert data["createdAt"] == previo["createdAt"]

    res = client.put(f"/tickets/{ticket_id}", json={})
    assert res.status_code == 400
    assert res.json()["error"] == "No hay campos para actualizar"

    res = client.delete(f"/tickets/{ticket_id}")
    assert res.json() == {"success": True, "message": "Despacho eliminado correctamente"}
    assert client.get(f"/tickets/{ticket_id}").status_code == 404
    assert client.delete(f"/tickets/{ticket_id}").status_code == 404
    assert client.put(f"/tickets/{ticket_id}", json={"notes": "x"}).status_code == 404


def test_id_no_numerico_es_error_de_validacion(client) -> None:
    res = client.get("/tickets/abc")
    assert res.status_code == 400
    assert res.json()["success"] is False


def test_busqueda_paginada_y_estadisticas(client) -> None:
    for i in range(12):
        estado = "in_progress" if i % 3 == 0 else "pending"
        _crear(client, invoiceId=f"F-{i:02d}", clientName=f"Cliente {i}", status=estado)

    res = client.get("/tickets/search", params={"limit": 5, "offset": 10})
    body = res.json()
    assert res.status_code == 200
    assert body["success"] is True
    assert body["count"] == 2
    assert body["total"] == 12
    assert body["hasMore"] is False

    res = client.get("/tickets/search", params={"status": "in_progress", "q": "cliente", "limit": 2})
    body = res.json()
    assert body["total"] == 4
    assert body["count"] == 2
    assert body["hasMore"] is True
    assert all(t["status"] == "in_progress" for t in body["data"])

    res = client.get("/tickets/search", params={"sortBy": "invoiceId", "status": ""})
    assert [t["invoiceId"] for t in res.json()["data"]][:3] == ["F-00", "F-01", "F-02"]

    res = client.get("/tickets/search", params={"status": "desconocido"})
    assert res.status_code == 400

    res = client.get("/tickets/stats")
    assert res.json() == {"success": True, "data": {"pending": 8, "inProgress": 4}}


def test_busqueda_por_rango_de_fechas(client) -> None:
    _crear(client, invoiceId="DIC", scheduledAt="2023-12-31T23:59:59")
    _crear(client, invoiceId="ENE", scheduledAt="2024-01-15T08:00:00")
    _crear(client, invoiceId="FEB", scheduledAt="2024-02-01T00:00:00")

    res = client.get("/tickets/search", params={"dateFrom": "2024-01-01", "dateTo": "2024-01-31"})
    assert [t["invoiceId"] for t in res.json()["data"]] == ["ENE"]


def test_listado_en_orden_por_defecto(client) -> None:
    _crear(client, invoiceId="A", scheduledAt="2024-01-01")
    _crear(client, invoiceId="B", scheduledAt="2024-03-01")
    _crear(client, invoiceId="C", scheduledAt="2024-02-01")

    body = client.get("/tickets").json()
    assert body["success"] is True
    assert [t["invoiceId"] for t in body["data"]] == ["B", "C", "A"]
