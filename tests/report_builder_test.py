import sys
import os
import json
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
from comparator.report_builder import ReportBuilder
from core.site_checker import SiteResult


def results():
    return [
        SiteResult('http://example.com/', True),
        SiteResult('http://example.org/', False, ['[wrapper] <b> & <i> differ'], 3),
    ]


def test_collect_metrics():
    builder = ReportBuilder()
    data = builder.collect_metrics(results())
    assert data['summary'] == {'total_sites': 2, 'passed_sites': 1, 'failed_sites': 1, 'total_findings': 3}
    assert [site['url'] for site in data['sites']] == ['http://example.com/', 'http://example.org/']

def test_json_report(tmp_path):
    builder = ReportBuilder()
    for result in results():
        builder.add(result)
    path = builder.generate_json_report(tmp_path / 'out' / 'report.json')
    data = json.loads(path.read_text())
    assert data['summary']['failed_sites'] == 1
    assert data['sites'][1]['failures'] == ['[wrapper] <b> & <i> differ']

def test_html_report_escapes_failures(tmp_path):
    builder = ReportBuilder(title='Nightly run')
    builder.collect_metrics(results())
    html = builder.generate_html_report(tmp_path / 'report.html').read_text()
    assert '<title>Nightly run</title>' in html
    assert '&lt;b&gt; &amp; &lt;i&gt; differ' in html
    assert '<td class="failed">fail</td>' in html
    assert '<td class="passed">pass</td>' in html
