# Nombre de archivo: test_ws.py
# Ubicación de archivo: tests/test_ws.py
# Descripción: Pruebas del canal WebSocket de despachos (resumen, difusión y comandos)

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from api.app.context import build_context
from api.app.main import create_app


def _crear(client, factura: str = "F-1", **campos) -> dict:
    payload = {"invoiceId": factura, "clientName": "Acme", "scheduledAt": "2024-05-01"}
    payload.update(campos)
    res = client.post("/tickets", json=payload)
    assert res.status_code == 201
    return res.json()["data"]


def test_resumen_inicial_con_pendientes_y_en_curso(client) -> None:
    _crear(client, "A")
    _crear(client, "B", status="in_progress")
    _crear(client, "C", status="completed")

    with client.websocket_connect("/ws") as ws:
        assert ws.receive_json() == {"event": "tickets:snapshot", "data": {"pending": 1, "inProgress": 1}}


def test_mutaciones_http_llegan_a_todas_las_sesiones_en_orden(client) -> None:
    with client.websocket_connect("/ws") as ws1, client.websocket_connect("/ws") as ws2:
        ws1.receive_json()
        ws2.receive_json()

        creado = _crear(client)
        client.patch(f"/tickets/{creado['id']}/status", json={"status": "completed"})
        client.delete(f"/tickets/{creado['id']}")

        for ws in (ws1, ws2):
            eventos = [ws.receive_json() for _ in range(3)]
            assert [e["event"] for e in eventos] == ["ticket:created", "ticket:updated", "ticket:deleted"]
            assert eventos[0]["data"] == creado
            assert eventos[1]["data"]["status"] == "completed"
            assert eventos[2]["data"] == {"id": creado["id"]}


def test_actualizacion_por_websocket_se_difunde_incluido_el_emisor(client) -> None:
    creado = _crear(client)
    with client.websocket_connect("/ws") as emisor, client.websocket_connect("/ws") as otro:
        emisor.receive_json()
        otro.receive_json()

        emisor.send_json({"event": "ticket:update", "data": {"id": creado["id"], "notes": "tocar timbre"}})

        for ws in (emisor, otro):
            evento = ws.receive_json()
            assert evento["event"] == "ticket:updated"
            assert evento["data"]["notes"] == "tocar timbre"

    assert client.get(f"/tickets/{creado['id']}").json()["data"]["notes"] == "tocar timbre"


def test_cambio_de_estado_invalido_responde_error_solo_al_emisor(client) -> None:
    creado = _crear(client, status="in_progress")
    with client.websocket_connect("/ws") as emisor, client.websocket_connect("/ws") as otro:
        emisor.receive_json()
        otro.receive_json()

        emisor.send_json({"event": "ticket:status", "data": {"id": creado["id"], "status": "cancelled"}})
        error = emisor.receive_json()
        assert error["event"] == "tickets:error"
        assert error["data"]["code"] == "VALIDATION_ERROR"

        emisor.send_json(
            {"event": "ticket:status", "data": {"id": creado["id"], "status": "cancelled", "cancellationReason": "no abre"}}
        )
        assert emisor.receive_json()["event"] == "ticket:updated"
        # El otro cliente solo ve el cambio aplicado, no el error
        evento = otro.receive_json()
        assert evento["event"] == "ticket:updated"
        assert evento["data"]["cancellationReason"] == "no abre"


def test_consulta_filtrada_devuelve_datos(client) -> None:
    _crear(client, "A")
    _crear(client, "B", status="in_progress")
    with client.websocket_connect("/ws") as ws:
        ws.receive_json()
        ws.send_json({"event": "tickets:request", "data": {"status": "in_progress"}})
        respuesta = ws.receive_json()

    assert respuesta["event"] == "tickets:data"
    assert [t["invoiceId"] for t in respuesta["data"]["data"]] == ["B"]
    assert respuesta["data"]["total"] == 1
    assert respuesta["data"]["hasMore"] is False


def test_mensajes_invalidos_no_cortan_la_sesion(client) -> None:
    with client.websocket_connect("/ws") as ws:
        ws.receive_json()
        ws.send_text("esto no es json")
        assert ws.receive_json()["data"]["message"] == "Mensaje inválido"

        ws.send_json({"event": "ticket:borrar", "data": {}})
        assert ws.receive_json()["event"] == "tickets:error"

        ws.send_json({"event": "ticket:update", "data": {"notes": "sin id"}})
        assert ws.receive_json()["data"]["message"] == "El id del despacho es requerido"

        ws.send_json({"event": "ticket:update", "data": {"id": 999, "notes": "x"}})
        assert ws.receive_json()["data"]["code"] == "NOT_FOUND"

        ws.send_json({"event": "tickets:request", "data": {}})
        assert ws.receive_json()["event"] == "tickets:data"


def test_origen_no_permitido_se_rechaza(settings) -> None:
    settings.allowed_origins = "http://app.local"
    ctx = build_context(settings)
    try:
        with TestClient(create_app(ctx)) as client:
            with client.websocket_connect("/ws", headers={"origin": "http://intruso.local"}) as ws:
                assert ws.receive_json()["data"]["code"] == "WS_FORBIDDEN"
                with pytest.raises(WebSocketDisconnect) as exc:
                    ws.receive_json()
                assert exc.value.code == 4403

            with client.websocket_connect("/ws", headers={"origin": "http://app.local"}) as ws:
                assert ws.receive_json()["event"] == "tickets:snapshot"
    finally:
        ctx.close()


def test_sesion_libera_su_suscripcion_al_cerrarse(client, context) -> None:
    assert context.broadcaster.sesiones_activas == 0
    with client.websocket_connect("/ws") as ws:
        ws.receive_json()
        assert context.broadcaster.sesiones_activas == 1
        assert client.get("/health").json()["sessions"] == 1
    assert context.broadcaster.sesiones_activas == 0
