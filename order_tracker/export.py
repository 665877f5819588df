import csv
import io
from collections.abc import Iterable
from datetime import date, datetime

from .models import Activity, ActivityAction, Order, month_name, user_name

ORDER_HEADERS = [
    "ID",
    "Nombre del Pedido",
    "Precio (€)",
    "Adelanto (€)",
    "Porcentaje Alex (€)",
    "Pagado a Alex (€)",
    "Pendiente (€)",
    "Material Propio",
    "Estado",
    "Mes",
    "Año",
    "Creado por",
    "Fecha Creación",
    "Última Actualización",
]

ACTIVITY_HEADERS = [
    "ID",
    "Fecha y Hora",
    "Usuario",
    "Acción",
    "Pedido",
    "Campo Modificado",
    "Valor Anterior",
    "Valor Nuevo",
    "ID Pedido",
]

ACTION_LABELS = {
    ActivityAction.CREATE: "Crear pedido",
    ActivityAction.UPDATE: "Modificar pedido",
    ActivityAction.PAYMENT: "Registrar pago",
}


def format_timestamp(value: datetime) -> str:
    return value.strftime("%d/%m/%Y, %H:%M:%S")


def _to_csv(headers: list[str], rows: Iterable[list]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(headers)
    writer.writerows(rows)
    return buffer.getvalue()


def orders_to_csv(orders: Iterable[Order]) -> str:
    rows = (
        [
            order.id,
            order.name,
            f"{order.price:.2f}",
            f"{order.advance_payment:.2f}",
            f"{order.alex_percentage:.2f}",
            f"{order.paid_to_alex:.2f}",
            f"{order.pending:.2f}",
            "Sí" if order.is_own_material else "No",
            "Pagado" if order.settled else "Pendiente",
            month_name(order.month),
            order.year,
            user_name(order.created_by),
            format_timestamp(order.created_at),
            format_timestamp(order.updated_at),
        ]
        for order in orders
    )
    return _to_csv(ORDER_HEADERS, rows)


def activities_to_csv(activities: Iterable[Activity]) -> str:
    rows = (
        [
            activity.id,
            format_timestamp(activity.created_at),
            activity.user_name or "Usuario desconocido",
            ACTION_LABELS.get(activity.action, activity.action.value),
            activity.order_name or "Sin nombre",
            activity.field_changed or "",
            activity.old_value or "",
            activity.new_value or "",
            activity.order_id,
        ]
        for activity in activities
    )
    return _to_csv(ACTIVITY_HEADERS, rows)


def orders_filename(month: int | None, year: int | None, all_months: bool, today: date) -> str:
    filename = "pedidos"
    if all_months:
        filename = "pedidos-todos"
    elif month and year:
        filename = f"pedidos-{month_name(month).lower()}-{year}"
    return f"{filename}-{today.isoformat()}.csv"


def activities_filename(today: date) -> str:
    return f"registro-actividad-{today.isoformat()}.csv"
