"""
Tests for the command line interface
====================================

Run with: pytest tests/test_cli.py -v
"""

import json

import numpy as np
import pytest

from conftest import make_tensor
from vin_scanner.cli import EXIT_ERROR, EXIT_INVALID, EXIT_OK, build_parser, main


class TestValidateCommand:
    """Tests for `vin-scanner validate`."""

    def test_valid(self, capsys, valid_vin):
        assert main(['validate', "VIN: " + valid_vin]) == EXIT_OK
        out = capsys.readouterr().out
        assert valid_vin in out
        assert "VALID" in out

    def test_checksum_failure(self, capsys):
        assert main(['validate', "1HGBH41J5MN109186"]) == EXIT_INVALID
        assert "Invalid VIN checksum" in capsys.readouterr().out

    def test_lenient_flag(self):
        assert main(['validate', "1HGBH41J5MN109186", '--lenient']) == EXIT_OK

    def test_json_output(self, capsys, valid_vin):
        assert main(['validate', valid_vin + "/", '--json']) == EXIT_OK
        data = json.loads(capsys.readouterr().out)
        assert data['vin'] == valid_vin
        assert data['was_trimmed'] is True

    def test_policy_from_environment(self, monkeypatch):
        monkeypatch.setenv('VIN_CHECKSUM_POLICY', 'lenient')
        assert main(['validate', "1HGBH41J5MN109186"]) == EXIT_OK

    def test_invalid_environment_is_error(self, monkeypatch, capsys):
        monkeypatch.setenv('VIN_CHECKSUM_POLICY', 'relaxed')
        assert main(['validate', "1HGBH41JXMN109186"]) == EXIT_ERROR
        assert "Invalid checksum policy" in capsys.readouterr().err


class TestCleanCommand:
    """Tests for `vin-scanner clean`."""

    def test_clean(self, capsys, valid_vin):
        assert main(['clean', "vin: ihgbh4ijxmn1o9i86!"]) == EXIT_OK
        assert capsys.readouterr().out.strip() == valid_vin

    def test_no_vin(self, capsys):
        assert main(['clean', "ERA:PPSNAE234439G161"]) == EXIT_INVALID
        assert "invalid_characters_in_middle" in capsys.readouterr().err


class TestDecodeCommand:
    """Tests for `vin-scanner decode`."""

    def test_decode(self, capsys, valid_vin):
        assert main(['decode', valid_vin]) == EXIT_OK
        out = capsys.readouterr().out
        assert "1HG" in out
        assert "North America" in out

    def test_decode_json(self, capsys, valid_vin):
        assert main(['decode', valid_vin, '--json']) == EXIT_OK
        assert json.loads(capsys.readouterr().out)['model_year'] == 2021

    def test_decode_bad_length(self):
        assert main(['decode', "SHORT"]) == EXIT_INVALID


class TestDetectCommand:
    """Tests for `vin-scanner detect`."""

    @pytest.fixture
    def tensor_file(self, tmp_path):
        path = tmp_path / "output.npy"
        np.save(path, make_tensor([[0.5, 0.5, 0.25, 0.125, 0.9, 1.0]], properties_first=True, padding=99))
        return path

    def test_detect(self, capsys, tensor_file):
        assert main(['detect', str(tensor_file), '-W', '1280', '-H', '960']) == EXIT_OK
        assert "Detected 1 box(es)" in capsys.readouterr().out

    def test_detect_json(self, capsys, tensor_file):
        assert main(['detect', str(tensor_file), '--width', '1280', '--height', '960', '--json']) == EXIT_OK
        data = json.loads(capsys.readouterr().out)
        assert data['boxes'][0]['left'] == pytest.approx(0.375)
        assert data['layout']['properties_first'] is True

    def test_detect_threshold(self, capsys, tensor_file):
        assert main(['detect', str(tensor_file), '-W', '1280', '-H', '960', '--conf', '0.95']) == EXIT_OK
        assert "Detected 0 box(es)" in capsys.readouterr().out

    def test_missing_file(self, tmp_path):
        assert main(['detect', str(tmp_path / "nope.npy"), '-W', '1280', '-H', '960']) == EXIT_ERROR

    def test_pickled_file(self, tmp_path, capsys):
        path = tmp_path / "objects.npy"
        np.save(path, np.array([{'boxes': 1}], dtype=object), allow_pickle=True)
        assert main(['detect', str(path), '-W', '640', '-H', '640']) == EXIT_ERROR
        assert "Error:" in capsys.readouterr().err

    def test_not_a_numpy_file(self, tmp_path, capsys):
        path = tmp_path / "garbage.npy"
        path.write_bytes(b"this is not an array")
        assert main(['detect', str(path), '-W', '640', '-H', '640']) == EXIT_ERROR
        assert "Error:" in capsys.readouterr().err

    def test_non_numeric_tensor(self, tmp_path, capsys):
        path = tmp_path / "strings.npy"
        np.save(path, np.full((1, 6, 10), 'x'))
        assert main(['detect', str(path), '-W', '640', '-H', '640']) == EXIT_ERROR
        assert "Error:" in capsys.readouterr().err

    def test_batched_tensor(self, tmp_path):
        path = tmp_path / "batch.npy"
        np.save(path, np.zeros((2, 6, 10), dtype=np.float32))
        assert main(['detect', str(path), '-W', '640', '-H', '640']) == EXIT_ERROR

    def test_bad_tensor_shape(self, tmp_path, capsys):
        path = tmp_path / "bad.npy"
        np.save(path, np.zeros((1, 2, 50), dtype=np.float32))
        assert main(['detect', str(path), '-W', '1280', '-H', '960']) == EXIT_ERROR
        assert "Error:" in capsys.readouterr().err


class TestParser:
    """Tests for argument parsing."""

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_detect_requires_size(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(['detect', 'output.npy'])
