"""
HTML run report for spibirds-metadata.
One report per command run; steps add sections as they go and the report is
saved at the end, also when a step fails.
"""
import datetime
import html
import os

STATUS_COLORS = {
    "SUCCESS": "#28a745",
    "FAILED": "#dc3545",
    "WARNING": "#ffc107",
}

REPORT_CSS = """
main { max-width: 1100px; margin: 24px auto; font-family: Helvetica, Arial, sans-serif; color: #212529; }
header { display: flex; align-items: center; justify-content: space-between; border-bottom: 2px solid #1d3557; }
.badge { padding: 6px 14px; border-radius: 12px; color: white; font-weight: bold; }
table.run th { text-align: left; padding-right: 16px; color: #6c757d; }
.alert { padding: 10px 14px; margin: 8px 0; border-left: 4px solid; }
.alert-success { border-color: #28a745; background: #eaf6ec; }
.alert-warning { border-color: #ffc107; background: #fff8e1; }
.alert-danger { border-color: #dc3545; background: #fbeaec; }
.table-container { overflow-x: auto; }
.table { border-collapse: collapse; font-size: 13px; }
.table th, .table td { border: 1px solid #dee2e6; padding: 4px 8px; }
.table-striped tr:nth-child(even) { background: #f6f7f9; }
"""


class HTMLReporter:
    def __init__(self, filename="spibirds_metadata_report.html", title="SPI-Birds metadata"):
        self.filename = filename
        self.title = title
        self.sections = []
        self.status = "RUNNING"
        self.start_time = datetime.datetime.now()
        self.error_message = None
        self.warnings = []

    def _get_status_color(self):
        return STATUS_COLORS.get(self.status, "#6c757d")

    def add_section(self, title, level=2):
        """Add a section header"""
        self.sections.append({'type': 'section', 'content': f"<h{level}>{html.escape(title)}</h{level}>"})

    def add_text(self, text):
        self.sections.append({'type': 'text', 'content': f"<p>{html.escape(str(text))}</p>"})

    def add_list(self, items, title=None):
        content = f"<h4>{html.escape(title)}</h4>" if title else ""
        content += "<ul>" + "".join(f"<li>{html.escape(str(item))}</li>" for item in items) + "</ul>"
        self.sections.append({'type': 'list', 'content': content})

    def add_dataframe(self, df, title=None, max_rows=10):
        """Add a pandas DataFrame as HTML table, showing at most max_rows rows"""
        content = f"<h4>{html.escape(title)}</h4>" if title else ""
        content += f"<p><strong>Shape:</strong> {df.shape[0]:,} rows × {df.shape[1]} columns</p>"
        if len(df) > max_rows:
            content += f"<p><em>Showing first {max_rows} rows of {len(df):,} total rows</em></p>"
        table_html = df.head(max_rows).to_html(classes="table table-striped")
        content += f'<div class="table-container">{table_html}</div>'
        self.sections.append({'type': 'dataframe', 'content': content})

    def add_success(self, message):
        self.sections.append({'type': 'success',
                              'content': f'<div class="alert alert-success">{html.escape(message)}</div>'})

    def add_warning(self, message):
        """Add a warning message and track it"""
        self.warnings.append(message)
        self.sections.append({'type': 'warning',
                              'content': f'<div class="alert alert-warning"><strong>WARNING:</strong> '
                                         f'{html.escape(message)}</div>'})

    def add_error(self, message):
        """Add an error message; the report is FAILED from here on"""
        self.error_message = message
        self.status = "FAILED"
        self.sections.append({'type': 'error',
                              'content': f'<div class="alert alert-danger"><strong>ERROR:</strong> '
                                         f'{html.escape(message)}</div>'})

    def set_status(self, status, error_message=None):
        """Set SUCCESS, WARNING or FAILED; a FAILED report stays FAILED"""
        if self.status == "FAILED" and status in ["SUCCESS", "WARNING"]:
            return
        self.status = status
        if error_message:
            self.add_error(error_message)

    def save(self):
        """Write the HTML file and return its path"""
        directory = os.path.dirname(self.filename)
        if directory:
            os.makedirs(directory, exist_ok=True)

        finished = datetime.datetime.now()
        elapsed = str(finished - self.start_time).split('.')[0]
        body = "\n".join(section['content'] for section in self.sections)
        title = html.escape(self.title)

        page = f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<title>{title} report</title>
<style>{REPORT_CSS}</style>
</head>
<body>
<main>
<header>
<h1>{title}</h1>
<span class="badge" style="background-color: {self._get_status_color()}">{self.status}</span>
</header>
<table class="run">
<tr><th>Started</th><td>{self.start_time:%Y-%m-%d %H:%M:%S}</td></tr>
<tr><th>Finished</th><td>{finished:%Y-%m-%d %H:%M:%S}</td></tr>
<tr><th>Elapsed</th><td>{elapsed}</td></tr>
</table>
{body}
</main>
</body>
</html>
"""
        with open(self.filename, 'w', encoding='utf-8') as f:
            f.write(page)
        return self.filename
