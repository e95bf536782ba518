"""
Period reports over invoices, revenues and debts.

Data for a date range is fetched once into ``ReportData``; each report shape
is a pure projection of it, so switching shape never queries again.
"""
import io
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Tuple
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle
from sqlalchemy.orm import Session, selectinload

from atelier.auth import UserSession
from atelier.models.debt import CorteCoseDebt
from atelier.models.invoice import Invoice
from atelier.models.revenue import Revenue
from atelier.services.invoice_service import month_bounds
from atelier.services.invoice_totals import sum_item_values

logger = logging.getLogger(__name__)

REPORT_TITLE = "Relatório de Notas Fiscais"
MONTH_ABBREVIATIONS = ["Jan", "Fev", "Mar", "Abr", "Mai", "Jun", "Jul", "Ago", "Set", "Out", "Nov", "Dez"]


class ReportShape(str, Enum):
    COMPLETE = "complete"
    NUMBER_VALUE = "number-value"
    VALUE_ONLY = "value-only"
    NUMBER_ITEMS_VALUE = "number-items-value"
    CONTACTS = "contacts"
    PAYMENTS = "payments"


SHAPE_LABELS = {
    ReportShape.COMPLETE: "Completo",
    ReportShape.NUMBER_VALUE: "Nota + Valor",
    ReportShape.VALUE_ONLY: "Apenas Valores",
    ReportShape.NUMBER_ITEMS_VALUE: "Nota + Itens",
    ReportShape.CONTACTS: "Contactos",
    ReportShape.PAYMENTS: "Pagamentos",
}


@dataclass
class ItemRow:
    """An invoice item flattened with its parent invoice's metadata"""
    delivery_date: date
    invoice_number: str
    description: str
    value: Decimal
    contact_name: Optional[str]
    phone_number: Optional[str]


@dataclass
class PaymentsSummary:
    projected_earning: Decimal
    total_debt: Decimal
    total_to_receive: Decimal
    total_received: Decimal
    balance: Decimal


@dataclass
class ReportData:
    start_date: date
    end_date: date
    invoices: List[Invoice] = field(default_factory=list)
    revenues: List[Revenue] = field(default_factory=list)
    debts: List[CorteCoseDebt] = field(default_factory=list)

    @property
    def regular_invoices(self) -> List[Invoice]:
        return [inv for inv in self.invoices if not inv.is_manual_entry]

    @property
    def manual_invoices(self) -> List[Invoice]:
        return [inv for inv in self.invoices if inv.is_manual_entry]

    @property
    def total_invoice_value(self) -> Decimal:
        return sum_item_values(inv.total_value for inv in self.regular_invoices)

    @property
    def total_manual_value(self) -> Decimal:
        return sum_item_values(inv.total_value for inv in self.manual_invoices)

    @property
    def total_value(self) -> Decimal:
        return self.total_invoice_value + self.total_manual_value

    @property
    def items(self) -> List[ItemRow]:
        return [
            ItemRow(
                delivery_date=inv.delivery_date,
                invoice_number=inv.invoice_number,
                description=item.description,
                value=Decimal(str(item.value)),
                contact_name=inv.contact_name,
                phone_number=inv.phone_number,
            )
            for inv in self.invoices
            for item in inv.invoice_items
        ]


@dataclass
class ReportTable:
    shape: ReportShape
    columns: List[str]
    rows: List[List[str]]
    summary_lines: List[str]

    @property
    def title(self) -> str:
        return SHAPE_LABELS[self.shape]


# Date presets

def current_month_range(today: date) -> Tuple[date, date]:
    return month_bounds(today.year, today.month)


def current_week_range(today: date) -> Tuple[date, date]:
    """Monday to Sunday of the week containing ``today``"""
    start = today - timedelta(days=today.weekday())
    return start, start + timedelta(days=6)


# Formatting

def format_money(value) -> str:
    return f"€ {Decimal(str(value or 0)):.2f}"


def format_date(value: date) -> str:
    return value.strftime("%d/%m/%Y")


def format_reference_month(reference_month: Optional[str]) -> str:
    """"2025-03" -> "Mar/2025"; anything unparseable is shown as-is"""
    if not reference_month:
        return "-"
    try:
        year, month = reference_month.split("-")
        return f"{MONTH_ABBREVIATIONS[int(month) - 1]}/{int(year)}"
    except (ValueError, IndexError):
        return reference_month


# Fetch

def fetch_report_data(db: Session, session: UserSession, start_date: date, end_date: date) -> ReportData:
    """One round of queries for the whole report page"""
    invoices = (
        db.query(Invoice)
        .options(selectinload(Invoice.invoice_items))
        .filter(
            Invoice.user_id == session.user_id,
            Invoice.is_validated.is_(True),
            Invoice.delivery_date >= start_date,
            Invoice.delivery_date <= end_date,
        )
        .order_by(Invoice.delivery_date.desc(), Invoice.id.desc())
        .all()
    )
    revenues = (
        db.query(Revenue)
        .filter(
            Revenue.user_id == session.user_id,
            Revenue.revenue_date >= start_date,
            Revenue.revenue_date <= end_date,
        )
        .order_by(Revenue.revenue_date.asc(), Revenue.id.asc())
        .all()
    )
    debts = (
        db.query(CorteCoseDebt)
        .filter(
            CorteCoseDebt.user_id == session.user_id,
            CorteCoseDebt.debt_date >= start_date,
            CorteCoseDebt.debt_date <= end_date,
        )
        .order_by(CorteCoseDebt.debt_date.asc(), CorteCoseDebt.id.asc())
        .all()
    )
    logger.info(
        f"Report data {start_date}..{end_date}: {len(invoices)} invoices, "
        f"{len(revenues)} revenues, {len(debts)} debts"
    )
    return ReportData(start_date=start_date, end_date=end_date, invoices=invoices, revenues=revenues, debts=debts)


# Projections

def payments_summary(data: ReportData, rate: Decimal) -> PaymentsSummary:
    """balance = rate x (invoice + manual value) + debts - revenues"""
    projected = data.total_value * rate
    total_debt = sum_item_values(d.amount for d in data.debts)
    total_received = sum_item_values(r.amount for r in data.revenues)
    return PaymentsSummary(
        projected_earning=projected,
        total_debt=total_debt,
        total_to_receive=projected + total_debt,
        total_received=total_received,
        balance=projected + total_debt - total_received,
    )


def _base_summary_lines(data: ReportData) -> List[str]:
    return [
        f"Total de Notas: {len(data.invoices)}",
        f"Valor Total: {format_money(data.total_value)}",
    ]


def project_report(data: ReportData, shape: ReportShape, rate: Decimal = Decimal("0.30")) -> ReportTable:
    """Column set, rows and summary lines for one report shape"""
    shape = ReportShape(shape)
    summary_lines = _base_summary_lines(data)
    rows: List[List[str]] = []

    if shape == ReportShape.COMPLETE:
        columns = ["Data", "Nº Nota", "Descrição", "Valor", "Contacto", "Telefone"]
        rows = [
            [
                format_date(item.delivery_date),
                item.invoice_number,
                item.description,
                format_money(item.value),
                item.contact_name or "-",
                item.phone_number or "-",
            ]
            for item in data.items
        ]
    elif shape == ReportShape.NUMBER_VALUE:
        columns = ["Nº Nota", "Data", "Valor Total"]
        rows = [
            [inv.invoice_number, format_date(inv.delivery_date), format_money(inv.total_value)]
            for inv in data.invoices
        ]
    elif shape == ReportShape.VALUE_ONLY:
        columns = ["Data", "Valor"]
        rows = [[format_date(inv.delivery_date), format_money(inv.total_value)] for inv in data.invoices]
    elif shape == ReportShape.NUMBER_ITEMS_VALUE:
        columns = ["Nº Nota", "Item", "Valor Item", "Total Nota"]
        for inv in data.invoices:
            for idx, item in enumerate(inv.invoice_items):
                # Invoice number and total only on the first row of each group
                rows.append([
                    inv.invoice_number if idx == 0 else "",
                    item.description,
                    format_money(item.value),
                    format_money(inv.total_value) if idx == 0 else "",
                ])
    elif shape == ReportShape.CONTACTS:
        columns = ["Nº Nota", "Nome", "Telefone", "Data", "Valor"]
        rows = [
            [
                inv.invoice_number,
                inv.contact_name or "-",
                inv.phone_number or "-",
                format_date(inv.delivery_date),
                format_money(inv.total_value),
            ]
            for inv in data.invoices
            if inv.contact_name or inv.phone_number
        ]
    else:
        summary = payments_summary(data, rate)
        summary_lines += [
            f"Projeção de Ganho ({rate * 100:.0f}%): {format_money(summary.projected_earning)}",
            f"Total Dívida Corte & Cose: {format_money(summary.total_debt)}",
            f"Total a Receber: {format_money(summary.total_to_receive)}",
            f"Total Pago: {format_money(summary.total_received)}",
            f"Saldo: {format_money(summary.balance)}",
        ]
        columns = ["Data", "Valor", "Mês Ref.", "Descrição"]
        rows = [
            [
                format_date(rev.revenue_date),
                format_money(rev.amount),
                format_reference_month(rev.reference_month),
                rev.description or "-",
            ]
            for rev in data.revenues
        ]

    return ReportTable(shape=shape, columns=columns, rows=rows, summary_lines=summary_lines)


# PDF

def report_filename(shape: ReportShape, today: date) -> str:
    return f"relatorio_{ReportShape(shape).value}_{today.strftime('%Y-%m-%d')}.pdf"


def render_report_pdf(
    data: ReportData,
    shape: ReportShape,
    rate: Decimal = Decimal("0.30"),
    generated_at: Optional[datetime] = None,
) -> bytes:
    """Render one report shape as a paginated PDF table"""
    generated_at = generated_at or datetime.now()
    table = project_report(data, shape, rate)

    buf = io.BytesIO()
    doc = SimpleDocTemplate(buf, pagesize=A4,
                            rightMargin=36, leftMargin=36,
                            topMargin=48, bottomMargin=36,
                            title=f"{REPORT_TITLE} - {table.title}")
    styles = getSampleStyleSheet()
    styles.add(ParagraphStyle(name='ReportSubtitle', parent=styles['Normal'], alignment=TA_CENTER, fontSize=12))
    styles.add(ParagraphStyle(name='ReportCell', parent=styles['Normal'], fontSize=8, leading=10))
    styles.add(ParagraphStyle(name='ReportHeadCell', parent=styles['ReportCell'], textColor=colors.white))
    styles.add(ParagraphStyle(name='ReportFooter', parent=styles['Normal'], fontSize=8))
    story = []

    story.append(Paragraph(REPORT_TITLE, styles['Title']))
    story.append(Paragraph(
        f"Período: {format_date(data.start_date)} a {format_date(data.end_date)}",
        styles['ReportSubtitle'],
    ))
    story.append(Spacer(1, 12))

    for line in table.summary_lines:
        story.append(Paragraph(escape(line), styles['Normal']))
    story.append(Spacer(1, 12))

    tdata = [[Paragraph(f"<b>{escape(c)}</b>", styles['ReportHeadCell']) for c in table.columns]]
    for row in table.rows:
        tdata.append([Paragraph(escape(cell), styles['ReportCell']) for cell in row])

    col_width = doc.width / len(table.columns)
    ptable = Table(tdata, colWidths=[col_width] * len(table.columns), repeatRows=1)
    ptable.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.Color(66 / 255, 66 / 255, 66 / 255)),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
        ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ('GRID', (0, 0), (-1, -1), 0.25, colors.grey),
        ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.whitesmoke]),
    ]))
    story.append(ptable)
    story.append(Spacer(1, 12))

    story.append(Paragraph(f"Gerado em: {generated_at.strftime('%d/%m/%Y %H:%M')}", styles['ReportFooter']))

    doc.build(story)
    buf.seek(0)
    logger.info(f"Rendered {table.shape.value} report with {len(table.rows)} rows")
    return buf.getvalue()
