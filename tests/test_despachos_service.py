# Nombre de archivo: test_despachos_service.py
# Ubicación de archivo: tests/test_despachos_service.py
# Descripción: Pruebas del ciclo de vida de despachos sobre SQLite y sobre el espejo en memoria

from __future__ import annotations

import asyncio
import time
from datetime import datetime

import pytest

from core.despachos.schemas import CambioEstado, DespachoActualizar, DespachoCrear
from core.despachos.storage import DatabaseDespachoStorage, InMemoryDespachoStorage
from core.errors import DuplicateInvoice, NotFound, ValidationError


def _crear(**campos) -> DespachoCrear:
    base = {"invoiceId": "F-100", "clientName": "Acme", "scheduledAt": "2024-05-01T10:30:00"}
    base.update(campos)
    return DespachoCrear.model_validate(base)


class _Capturador:
    def __init__(self) -> None:
        self.eventos = []

    def __call__(self, evento) -> None:
        self.eventos.append(evento)

    def tipos(self) -> list[str]:
        return [e.type for e in self.eventos]


@pytest.mark.asyncio
async def test_crear_y_obtener_conserva_campos_y_estado_por_defecto(servicio) -> None:
    creado = await servicio.crear(_crear(description="dos cajas", notes="frágil"))
    leido = await servicio.obtener(creado.id)

    assert leido.id_factura == "F-100"
    assert leido.nombre == "Acme"
    assert leido.fecha == datetime(2024, 5, 1, 10, 30)
    assert leido.descripcion == "dos cajas"
    assert leido.notas == "frágil"
    assert leido.estado.value == "pending"
    assert leido.motivo_cancelacion is None
    assert leido.created_at == leido.updated_at


@pytest.mark.asyncio
async def test_crear_con_estado_explicito(servicio) -> None:
    creado = await servicio.crear(_crear(status="in_progress"))
    assert creado.estado.value == "in_progress"


@pytest.mark.asyncio
async def test_factura_duplicada_falla_y_deja_un_solo_registro(servicio) -> None:
    await servicio.crear(_crear())
    with pytest.raises(DuplicateInvoice):
        await servicio.crear(_crear(clientName="Otro"))

    todos = await servicio.listar()
    assert [d.id_factura for d in todos] == ["F-100"]


@pytest.mark.asyncio
async def test_estado_invalido_se_rechaza(servicio) -> None:
    with pytest.raises(ValidationError):
        await servicio.crear(_crear(status="archived"))
    assert await servicio.listar() == []


@pytest.mark.asyncio
async def test_fecha_invalida_se_rechaza(servicio) -> None:
    with pytest.raises(ValidationError):
        await servicio.crear(_crear(scheduledAt="no-es-fecha"))


@pytest.mark.asyncio
async def test_crear_cancelado_exige_motivo(servicio) -> None:
    with pytest.raises(ValidationError):
        await servicio.crear(_crear(status="cancelled"))
    creado = await servicio.crear(_crear(status="cancelled", cancellationReason="sin stock"))
    assert creado.motivo_cancelacion == "sin stock"


@pytest.mark.asyncio
async def test_cancelar_sin_motivo_no_modifica_el_despacho(servicio) -> None:
    creado = await servicio.crear(_crear(status="in_progress"))
    for motivo in (None, "", "   "):
        with pytest.raises(ValidationError):
            await servicio.cambiar_estado(creado.id, CambioEstado(status="cancelled", cancellationReason=motivo))

    leido = await servicio.obtener(creado.id)
    assert leido.estado.value == "in_progress"
    assert leido.updated_at == creado.updated_at


@pytest.mark.asyncio
async def test_cancelar_con_motivo_y_reabrir_borra_el_motivo(servicio) -> None:
    creado = await servicio.crear(_crear(description="entregar 3 bultos"))
    cancelado = await servicio.cambiar_estado(
        creado.id, CambioEstado(status="cancelled", cancellationReason="cliente rechazó")
    )
    assert cancelado.estado.value == "cancelled"
    assert cancelado.motivo_cancelacion == "cliente rechazó"
    assert cancelado.descripcion == "entregar 3 bultos"

    reabierto = await servicio.cambiar_estado(creado.id, CambioEstado(status="pending", description="falta 1 bulto"))
    assert reabierto.estado.value == "pending"
    assert reabierto.motivo_cancelacion is None
    assert reabierto.descripcion == "falta 1 bulto"


@pytest.mark.asyncio
async def test_cualquier_estado_puede_pasar_a_cualquier_otro(servicio) -> None:
    creado = await servicio.crear(_crear(status="completed"))
    actual = await servicio.cambiar_estado(creado.id, CambioEstado(status="pending"))
    assert actual.estado.value == "pending"
    actual = await servicio.cambiar_estado(creado.id, CambioEstado(status="completed"))
    assert actual.estado.value == "completed"


@pytest.mark.asyncio
async def test_descripcion_solo_cambia_al_volver_a_pendiente(servicio) -> None:
    creado = await servicio.crear(_crear(description="original"))
    actual = await servicio.cambiar_estado(creado.id, CambioEstado(status="in_progress", description="ignorada"))
    assert actual.descripcion == "original"


@pytest.mark.asyncio
async def test_actualizar_estado_incrementa_updated_at(servicio) -> None:
    creado = await servicio.crear(_crear())
    previo = creado.updated_at
    await servicio.actualizar(creado.id, DespachoActualizar.model_validate({"status": "completed"}))

    leido = await servicio.obtener(creado.id)
    assert leido.estado.value == "completed"
    assert leido.updated_at > previo
    assert leido.created_at == creado.created_at


@pytest.mark.asyncio
async def test_actualizar_parcial_solo_toca_campos_enviados(servicio) -> None:
    creado = await servicio.crear(_crear(description="d", notes="n"))
    actualizado = await servicio.actualizar(creado.id, DespachoActualizar.model_validate({"clientName": "Acme SA"}))

    assert actualizado.nombre == "Acme SA"
    assert actualizado.descripcion == "d"
    assert actualizado.notas == "n"
    assert actualizado.fecha == creado.fecha


@pytest.mark.asyncio
async def test_actualizar_a_cancelado_exige_motivo(servicio) -> None:
    creado = await servicio.crear(_crear())
    with pytest.raises(ValidationError):
        await servicio.actualizar(creado.id, DespachoActualizar.model_validate({"status": "cancelled"}))
    cancelado = await servicio.actualizar(
        creado.id, DespachoActualizar.model_validate({"status": "cancelled", "cancellationReason": "dirección errónea"})
    )
    assert cancelado.motivo_cancelacion == "dirección errónea"

    # Editar otro campo mantiene el motivo existente
    editado = await servicio.actualizar(creado.id, DespachoActualizar.model_validate({"notes": "llamar antes"}))
    assert editado.motivo_cancelacion == "dirección errónea"


@pytest.mark.asyncio
async def test_actualizar_factura_a_una_existente_es_duplicada(servicio) -> None:
    await servicio.crear(_crear(invoiceId="F-1"))
    segundo = await servicio.crear(_crear(invoiceId="F-2"))
    with pytest.raises(DuplicateInvoice):
        await servicio.actualizar(segundo.id, DespachoActualizar.model_validate({"invoiceId": "F-1"}))
    # Reenviar la propia factura no es un conflicto
    mismo = await servicio.actualizar(segundo.id, DespachoActualizar.model_validate({"invoiceId": "F-2"}))
    assert mismo.id_factura == "F-2"


@pytest.mark.asyncio
async def test_actualizar_sin_campos_o_inexistente(servicio) -> None:
    creado = await servicio.crear(_crear())
    with pytest.raises(ValidationError):
        await servicio.actualizar(creado.id, DespachoActualizar())
    with pytest.raises(NotFound):
        await servicio.actualizar(9999, DespachoActualizar.model_validate({"notes": "x"}))
    with pytest.raises(NotFound):
        await servicio.cambiar_estado(9999, CambioEstado(status="completed"))


@pytest.mark.asyncio
async def test_eliminar_inexistente_no_emite_eventos(servicio) -> None:
    capturador = _Capturador()
    servicio.broadcaster.add_listener(capturador)
    with pytest.raises(NotFound):
        await servicio.eliminar(4242)
    assert capturador.eventos == []


@pytest.mark.asyncio
async def test_mutaciones_emiten_eventos_en_orden(servicio) -> None:
    capturador = _Capturador()
    servicio.broadcaster.add_listener(capturador)

    creado = await servicio.crear(_crear())
    await servicio.cambiar_estado(creado.id, CambioEstado(status="in_progress"))
    await servicio.eliminar(creado.id)

    assert capturador.tipos() == ["ticket:created", "ticket:updated", "ticket:deleted"]
    assert capturador.eventos[0].data["invoiceId"] == "F-100"
    assert capturador.eventos[1].data["status"] == "in_progress"
    assert capturador.eventos[2].data == {"id": creado.id}
    with pytest.raises(NotFound):
        await servicio.obtener(creado.id)


@pytest.mark.asyncio
async def test_llamador_cancelado_no_impide_publicar_el_cambio(servicio, monkeypatch) -> None:
    actualizar_sync = DatabaseDespachoStorage._actualizar_sync
    actualizar_memoria = InMemoryDespachoStorage.actualizar

    def _sync_lento(self, despacho_id, valores):
        time.sleep(0.2)
        return actualizar_sync(self, despacho_id, valores)

    async def _memoria_lenta(self, despacho_id, valores):
        await asyncio.sleep(0.2)
        return await actualizar_memoria(self, despacho_id, valores)

    monkeypatch.setattr(DatabaseDespachoStorage, "_actualizar_sync", _sync_lento)
    monkeypatch.setattr(InMemoryDespachoStorage, "actualizar", _memoria_lenta)

    creado = await servicio.crear(_crear())
    capturador = _Capturador()
    servicio.broadcaster.add_listener(capturador)

    # Igual que una sesión WebSocket que se corta con el comando en curso
    tarea = asyncio.create_task(servicio.cambiar_estado(creado.id, CambioEstado(status="completed")))
    await asyncio.sleep(0.05)
    tarea.cancel()
    with pytest.raises(asyncio.CancelledError):
        await tarea

    for _ in range(50):
        if capturador.eventos:
            break
        await asyncio.sleep(0.02)
    assert capturador.tipos() == ["ticket:updated"]
    assert capturador.eventos[0].data["status"] == "completed"
    assert (await servicio.obtener(creado.id)).estado.value == "completed"


@pytest.mark.asyncio
async def test_fallo_de_observador_no_rompe_la_mutacion(servicio) -> None:
    def _explota(evento) -> None:
        raise RuntimeError("observador caído")

    servicio.broadcaster.add_listener(_explota)
    creado = await servicio.crear(_crear())
    assert (await servicio.obtener(creado.id)).id_factura == "F-100"


@pytest.mark.asyncio
async def test_estadisticas_cuentan_pendientes_y_en_curso(servicio) -> None:
    await servicio.crear(_crear(invoiceId="A"))
    await servicio.crear(_crear(invoiceId="B", status="in_progress"))
    await servicio.crear(_crear(invoiceId="C", status="in_progress"))
    await servicio.crear(_crear(invoiceId="D", status="completed"))

    assert await servicio.estadisticas() == {"pending": 1, "inProgress": 2}


class TestResolucionDeUsuarios:
    @pytest.mark.asyncio
    async def test_ids_conocidos_guardan_username(self, context) -> None:
        servicio = context.despachos
        despachador = await context.usuarios.por_rol("dispatcher")
        supervisor = await context.usuarios.por_rol("supervisor")

        creado = await servicio.crear(
            _crear(dispatcherId=despachador[0].id, supervisorId=supervisor[0].id)
        )
        assert creado.despachador_username == "despachador"
        assert creado.supervisor_username == "supervisor"

    @pytest.mark.asyncio
    async def test_id_desconocido_no_es_error(self, context) -> None:
        creado = await context.despachos.crear(_crear(dispatcherId=777))
        assert creado.despachador_id == 777
        assert creado.despachador_username is None

    @pytest.mark.asyncio
    async def test_cambiar_despachador_recalcula_y_null_limpia(self, context) -> None:
        servicio = context.despachos
        despachador = (await context.usuarios.por_rol("dispatcher"))[0]
        creado = await servicio.crear(_crear())

        asignado = await servicio.actualizar(
            creado.id, DespachoActualizar.model_validate({"dispatcherId": despachador.id})
        )
        assert asignado.despachador_username == "despachador"

        liberado = await servicio.actualizar(creado.id, DespachoActualizar.model_validate({"dispatcherId": None}))
        assert liberado.despachador_id is None
        assert liberado.despachador_username is None

    @pytest.mark.asyncio
    async def test_desactivar_usuario_conserva_username_historico(self, context) -> None:
        despachador = (await context.usuarios.por_rol("dispatcher"))[0]
        creado = await context.despachos.crear(_crear(dispatcherId=despachador.id))
        await context.usuarios.desactivar(despachador.id)

        leido = await context.despachos.obtener(creado.id)
        assert leido.despachador_username == "despachador"
