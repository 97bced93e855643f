from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from datetime import datetime
import pandas as pd
import io

CONFIRMATION_COLUMNS = [
    'Compliance Record', 'Cycle Due Date', 'Milestone', 'Confirmed By',
    'Confirmed Email', 'Confirmation Type', 'Notes', 'Confirmed At'
]

def _confirmation_rows(record, confirmations):
    rows = []

    for confirmation in confirmations:
        reminder = confirmation.reminder
        rows.append({
            'Compliance Record': record.name,
            'Cycle Due Date': reminder.cycle_due_date.strftime('%Y-%m-%d'),
            'Milestone': reminder.reminder_type.replace('_', ' ').title(),
            'Confirmed By': confirmation.confirmed_by,
            'Confirmed Email': confirmation.confirmed_email,
            'Confirmation Type': confirmation.confirmation_type.title(),
            'Notes': confirmation.notes or '',
            'Confirmed At': confirmation.confirmation_date.strftime('%Y-%m-%d %H:%M')
        })

    return rows

def generate_confirmations_csv(record, confirmations):
    """
    Generate a CSV export of a record's confirmation history
    """
    df = pd.DataFrame(_confirmation_rows(record, confirmations), columns=CONFIRMATION_COLUMNS)

    buffer = io.StringIO()
    df.to_csv(buffer, index=False)
    buffer.seek(0)

    return buffer

def generate_confirmations_pdf(record, confirmations):
    """
    Generate a PDF report of a record's confirmation history
    """
    buffer = io.BytesIO()
    pdf_doc = SimpleDocTemplate(buffer, pagesize=letter)
    elements = []
    styles = getSampleStyleSheet()

    title_style = ParagraphStyle(
        'CustomTitle',
        parent=styles['Heading1'],
        fontSize=20,
        textColor=colors.HexColor('#2c3e50'),
        spaceAfter=20
    )

    elements.append(Paragraph(f"Compliance Confirmations<br/>{record.name}", title_style))
    elements.append(Spacer(1, 0.2*inch))

    info_data = [
        ['Field', 'Value'],
        ['Current Due Date', record.due_date.strftime('%B %d, %Y')],
        ['Frequency', record.frequency.title()],
        ['Status', record.status.title()],
        ['Last Confirmed', record.last_confirmed_at.strftime('%B %d, %Y') if record.last_confirmed_at else 'Never']
    ]

    info_table = Table(info_data, colWidths=[2*inch, 4*inch])
    info_table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#34495e')),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
        ('ALIGN', (0, 0), (-1, -1), 'LEFT'),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('GRID', (0, 0), (-1, -1), 1, colors.black),
        ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.lightgrey])
    ]))

    elements.append(info_table)
    elements.append(Spacer(1, 0.3*inch))

    if confirmations:
        elements.append(Paragraph("Confirmation History", styles['Heading2']))
        elements.append(Spacer(1, 0.1*inch))

        history_data = [['Cycle', 'Confirmed By', 'Type', 'Confirmed At']]

        for row in _confirmation_rows(record, confirmations):
            history_data.append([
                row['Cycle Due Date'],
                row['Confirmed By'][:30],
                row['Confirmation Type'],
                row['Confirmed At']
            ])

        history_table = Table(history_data, colWidths=[1.2*inch, 2.3*inch, 1.2*inch, 1.5*inch])
        history_table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#34495e')),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
            ('ALIGN', (0, 0), (-1, -1), 'LEFT'),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('GRID', (0, 0), (-1, -1), 1, colors.black),
            ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.lightgrey]),
            ('FONTSIZE', (0, 0), (-1, -1), 9)
        ]))

        elements.append(history_table)
    else:
        elements.append(Paragraph("No confirmations recorded", styles['Normal']))

    elements.append(Spacer(1, 0.3*inch))
    elements.append(Paragraph(
        f"Generated: {datetime.now().strftime('%B %d, %Y at %I:%M %p')}",
        styles['Normal']
    ))

    pdf_doc.build(elements)
    buffer.seek(0)
    return buffer
