"""Tests for the command line interface."""
import importlib

import aiohttp
import pytest
from typer.testing import CliRunner

from drivechunks import DriveChunksClient, TransferConfig
from drivechunks.cli.main import app
from drivechunks.core.catalog import ChunkRecord, FileManifest, SQLiteCatalog

cli_main = importlib.import_module("drivechunks.cli.main")


@pytest.fixture
def runner():
    return CliRunner()

@pytest.fixture
def home(tmp_path, monkeypatch):
    """Point the CLI at a temporary catalog."""
    monkeypatch.setenv('DRIVECHUNKS_HOME', str(tmp_path))
    monkeypatch.setenv('DRIVECHUNKS_USER', 'alice')
    return tmp_path

class TestDirectoryCommands:
    """mkdir and dirs."""
    
    def test_mkdir_and_dirs(self, runner, home):
        """Test created directories are listed with absolute paths."""
        assert runner.invoke(app, ['mkdir', 'docs']).exit_code == 0
        assert runner.invoke(app, ['mkdir', '/docs/work']).exit_code == 0
        
        result = runner.invoke(app, ['dirs'])
        
        assert result.exit_code == 0
        assert '/docs/' in result.output
        assert '/docs/work/' in result.output
    
    def test_mkdir_parents(self, runner, home):
        """Test -p creates missing parents."""
        result = runner.invoke(app, ['mkdir', '-p', '/a/b/c'])
        
        assert result.exit_code == 0
        assert '/a/b/c/' in runner.invoke(app, ['dirs']).output
    
    def test_mkdir_duplicate(self, runner, home):
        """Test duplicate directories fail."""
        runner.invoke(app, ['mkdir', 'docs'])
        
        result = runner.invoke(app, ['mkdir', 'docs'])
        
        assert result.exit_code == 1
        assert 'already exists' in result.output
    
    def test_mkdir_missing_parent(self, runner, home):
        """Test missing parent fails without -p."""
        result = runner.invoke(app, ['mkdir', '/nope/docs'])
        
        assert result.exit_code == 1
    
    def test_dirs_empty(self, runner, home):
        """Test listing with no directories."""
        result = runner.invoke(app, ['dirs'])
        
        assert result.exit_code == 0
        assert 'No directories' in result.output
    
    def test_dirs_per_user(self, runner, home):
        """Test directories are scoped to the user."""
        runner.invoke(app, ['mkdir', 'docs'])
        
        result = runner.invoke(app, ['dirs', '--user', 'bob'])
        
        assert 'No directories' in result.output

class TestFileCommands:
    """ls and info."""
    
    @pytest.fixture
    def stored(self, home):
        with SQLiteCatalog(home / 'catalog.db') as catalog:
            catalog.upsert_user('alice')
            docs = catalog.create_directory('docs', 'alice')
            catalog.create_file(FileManifest(
                id='file-1',
                name='a.bin',
                size=1500,
                owner_username='alice',
                parent_directory_id=docs.id,
                chunks=[
                    ChunkRecord('c0', 0, 1000, 'c0'),
                    ChunkRecord('c1', 1, 500, None),
                ],
            ))
        return home
    
    def test_ls_empty(self, runner, home):
        """Test listing with no files."""
        result = runner.invoke(app, ['ls'])
        
        assert result.exit_code == 0
        assert 'No files' in result.output
    
    def test_ls(self, runner, stored):
        """Test files are listed by absolute path."""
        result = runner.invoke(app, ['ls'])
        
        assert result.exit_code == 0
        assert '/docs/a.bin' in result.output
    
    def test_ls_long(self, runner, stored):
        """Test long listing shows chunk failures."""
        result = runner.invoke(app, ['ls', '-l'])
        
        assert result.exit_code == 0
        assert 'file-1' in result.output
        assert '1 failed' in result.output
    
    def test_info(self, runner, stored):
        """Test manifest JSON output."""
        result = runner.invoke(app, ['info', 'file-1'])
        
        assert result.exit_code == 0
        assert '"remote_id": null' in result.output
    
    def test_info_missing(self, runner, home):
        """Test unknown file fails."""
        result = runner.invoke(app, ['info', 'missing'])
        
        assert result.exit_code == 1
        assert 'not found' in result.output

class TestTransferCommands:
    """upload and download against an injected store."""
    
    @pytest.fixture
    def use_store(self, home, monkeypatch):
        """Route the CLI client to the given store."""
        def install(store):
            def open_client(user):
                return DriveChunksClient(
                    user,
                    cli_main.get_catalog_path(),
                    store=store,
                    transfer_config=TransferConfig(max_chunk_size=1000)
                )
            monkeypatch.setattr(cli_main, 'open_client', open_client)
        return install
    
    @pytest.fixture
    def source(self, home, sample_content):
        path = home / 'a.bin'
        path.write_bytes(sample_content)
        return path
    
    def test_upload_and_download(self, runner, use_store, fake_store, source, home, sample_content):
        """Test a file round-trips through the commands."""
        use_store(fake_store)
        
        result = runner.invoke(app, ['upload', str(source)])
        
        assert result.exit_code == 0
        assert 'Chunks: 3' in result.output
        file_id = result.output.split('File ID: ')[1].split()[0]
        
        out = home / 'out.bin'
        result = runner.invoke(app, ['download', file_id, str(out)])
        
        assert result.exit_code == 0
        assert out.read_bytes() == sample_content
    
    def test_upload_failed_chunk_exit_code(self, runner, use_store, make_store, source):
        """Test partial uploads exit with 2."""
        use_store(make_store(fail_ids={'id-0002'}))
        
        result = runner.invoke(app, ['upload', str(source)])
        
        assert result.exit_code == 2
        assert 'failed chunks: [1]' in result.output
    
    def test_upload_transport_error(self, runner, use_store, make_store, source):
        """Test a dropped connection is reported instead of a traceback."""
        class DisconnectingStore(make_store):
            async def ensure_root_directory(self, name):
                raise aiohttp.ServerDisconnectedError()
        
        use_store(DisconnectingStore())
        
        result = runner.invoke(app, ['upload', str(source)])
        
        assert result.exit_code == 1
        assert 'Upload failed' in result.output
        assert not isinstance(result.exception, aiohttp.ClientError)
    
    def test_download_transport_error(self, runner, use_store, make_store, source, home):
        """Test a dropped connection during download exits with 1."""
        store = make_store()
        use_store(store)
        result = runner.invoke(app, ['upload', str(source)])
        file_id = result.output.split('File ID: ')[1].split()[0]
        
        async def disconnect(object_id, size, buffer_size=64 * 1024):
            raise aiohttp.ServerDisconnectedError()
            yield b''
        store.read_object = disconnect
        
        result = runner.invoke(app, ['download', file_id, str(home / 'out.bin')])
        
        assert result.exit_code == 1
        assert 'Download failed' in result.output
        assert not (home / 'out.bin').exists()
