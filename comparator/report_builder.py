"""
Report Builder Module
Generates run summaries of the site comparisons using Jinja2 templates.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Union

from jinja2 import Environment, FileSystemLoader, select_autoescape

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent / 'templates'
HTML_TEMPLATE = 'report.html.j2'


class ReportBuilder:
    """Collects site results and renders them as HTML or JSON.

    A site result is any object with ``url``, ``passed``, ``failures`` and
    ``findings_count`` attributes.
    """

    def __init__(self, title: str = 'CSS site oracle report'):
        self.env = Environment(loader=FileSystemLoader(str(TEMPLATE_DIR)),
                               autoescape=select_autoescape(['html', 'j2']))
        self.template = self.env.get_template(HTML_TEMPLATE)
        self.title = title
        self.results: List = []
        self.data: Dict = {}

    def add(self, result) -> None:
        self.results.append(result)

    def collect_metrics(self, comparison_results=None) -> Dict:
        """Collect and organize comparison metrics."""
        if comparison_results is not None:
            self.results.extend(comparison_results)
        sites = []
        for result in self.results:
            sites.append({
                'url': result.url,
                'passed': result.passed,
                'failures': list(result.failures),
                'findings_count': result.findings_count,
            })
        passed = sum(1 for site in sites if site['passed'])
        self.data = {
            'title': self.title,
            'generated': datetime.now().isoformat(timespec='seconds'),
            'summary': {
                'total_sites': len(sites),
                'passed_sites': passed,
                'failed_sites': len(sites) - passed,
                'total_findings': sum(site['findings_count'] for site in sites),
            },
            'sites': sites,
        }
        return self.data

    def generate_html_report(self, output_path: Union[str, Path]) -> Path:
        """Generate the HTML summary of the collected results."""
        output_path = Path(output_path)
        if not self.data:
            self.collect_metrics()
        output_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            output_path.write_text(self.template.render(**self.data), encoding='utf-8')
        except OSError as e:
            logger.error(f"Error writing HTML report {output_path}: {e}", exc_info=True)
            raise
        logger.info(f"HTML report written to {output_path}")
        return output_path

    def generate_json_report(self, output_path: Union[str, Path]) -> Path:
        """Generate JSON report with raw comparison data."""
        output_path = Path(output_path)
        if not self.data:
            self.collect_metrics()
        output_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            with open(output_path, 'w', encoding='utf-8') as f:
                json.dump(self.data, f, indent=2)
        except OSError as e:
            logger.error(f"Error writing JSON report {output_path}: {e}", exc_info=True)
            raise
        logger.info(f"JSON report written to {output_path}")
        return output_path
