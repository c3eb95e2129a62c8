import sys
import os
import pytest
from pathlib import Path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
from core.config import CheckerConfig, load_config, load_sites
from core.errors import ConfigError


def write_config(tmp_path, body):
    path = tmp_path / 'samplesites.ini'
    path.write_text('[samplesites]\n' + body)
    return path


def test_missing_file_gives_defaults(tmp_path):
    config = load_config(tmp_path / 'nothing.ini')
    assert config == CheckerConfig()
    assert config.reporter == 'log'
    assert config.max_nodes == 5000
    assert not config.cache_enabled

def test_values_are_read(tmp_path):
    cachedir = tmp_path / 'cache'
    cachedir.mkdir()
    path = write_config(tmp_path, f"""cachedir = {cachedir}
reporter = Tree
fail-on-warning = yes
compare-attributes = true
max-nodes = 200
timeout = 2.5
log-level = debug
right-parsers = lxml, html5lib
""")
    config = load_config(path)
    assert config.cachedir == cachedir
    assert config.cache_enabled
    assert config.reporter == 'tree'
    assert config.fail_on_warning
    assert config.compare_attributes
    assert config.max_nodes == 200
    assert config.timeout == 2.5
    assert config.log_level == 'DEBUG'
    assert config.right_parsers == ('lxml', 'html5lib')

def test_nonexistent_cache_directory_disables_cache(tmp_path):
    config = load_config(write_config(tmp_path, f"cachedir = {tmp_path / 'absent'}\n"))
    assert config.cachedir == tmp_path / 'absent'
    assert not config.cache_enabled

@pytest.mark.parametrize('body', [
    'reporter = html\n',
    'fail-on-warning = maybe\n',
    'max-nodes = many\n',
])
def test_invalid_values_raise(tmp_path, body):
    with pytest.raises(ConfigError):
        load_config(write_config(tmp_path, body))

def test_missing_section_gives_defaults(tmp_path):
    path = tmp_path / 'other.ini'
    path.write_text('[other]\nreporter = tree\n')
    assert load_config(path) == CheckerConfig()

def test_overrides_skip_none():
    config = CheckerConfig().with_overrides(reporter='tree', cachedir=None, compare_attributes=None)
    assert config.reporter == 'tree'
    assert config.cachedir is None
    assert not config.compare_attributes
    with pytest.raises(ConfigError):
        CheckerConfig().with_overrides(reporter='html')

def test_site_list(tmp_path):
    path = tmp_path / 'sites.txt'
    path.write_text('# sample sites\nhttp://example.com/\n\n  https://example.org/page  \n')
    assert load_sites(path) == ['http://example.com/', 'https://example.org/page']
    with pytest.raises(ConfigError):
        load_sites(tmp_path / 'missing.txt')

def test_paths_are_expanded(tmp_path):
    config = load_config(write_config(tmp_path, 'report-dir = ~/reports\n'))
    assert config.report_dir == Path('~/reports').expanduser()
