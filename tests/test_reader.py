import numpy as np
import pytest

from spin_surrogate.dataset import Dataset, FieldRecord
from spin_surrogate.exact import generate_dataset
from spin_surrogate.reader import DatasetReadError, Reader, record_stride, write_dataset


def test_record_stride():
    assert record_stride(2) == 208
    assert record_stride(2, "float32") == 104
    assert record_stride(3) == (9 + 8 + 64) * 8


def test_two_records_from_416_bytes(tmp_path):
    path = tmp_path / "two.bin"
    source = generate_dataset(2, 2, seed=1)
    assert write_dataset(source, path) == 416

    dataset = Reader(2, path).read()

    assert len(dataset) == 2
    for (f_in, v_in, w_in), (f_out, v_out, w_out) in zip(source, dataset):
        np.testing.assert_array_equal(f_in.as_vector(), f_out.as_vector())
        np.testing.assert_array_equal(v_in, v_out)
        np.testing.assert_array_equal(w_in, w_out)


def test_trailing_partial_record_is_dropped(tmp_path):
    path = tmp_path / "trailing.bin"
    write_dataset(generate_dataset(2, 2, seed=1), path)
    with open(path, 'ab') as f:
        f.write(b'\x00' * 50)

    assert path.stat().st_size == 466
    assert len(Reader(2, path).read()) == 2


def test_file_shorter_than_one_record(tmp_path):
    path = tmp_path / "short.bin"
    path.write_bytes(b'\x00' * 100)

    assert len(Reader(2, path).read()) == 0


def test_missing_file_raises(tmp_path):
    with pytest.raises(DatasetReadError):
        Reader(2, tmp_path / "missing.bin").read()


def test_empty_file_raises(tmp_path):
    path = tmp_path / "empty.bin"
    path.write_bytes(b'')

    with pytest.raises(DatasetReadError):
        Reader(2, path).read()


def test_eigenvector_block_is_column_major(tmp_path):
    fields = np.arange(1, 7, dtype=np.float64)
    values = np.array([-2.0, -1.0, 1.0, 2.0])
    block = np.arange(16, dtype=np.float64)
    path = tmp_path / "layout.bin"
    path.write_bytes(np.concatenate([fields, values, block]).tobytes())

    fields_out, values_out, wavefx = Reader(2, path).read()[0]

    np.testing.assert_array_equal(fields_out.coupling, [1.0, 2.0])
    np.testing.assert_array_equal(fields_out.transverse, [3.0, 4.0])
    np.testing.assert_array_equal(fields_out.longitudinal, [5.0, 6.0])
    np.testing.assert_array_equal(values_out, values)
    # first dim elements on disk form the ground state column
    np.testing.assert_array_equal(wavefx[:, 0], [0.0, 1.0, 2.0, 3.0])
    np.testing.assert_array_equal(wavefx[0, :], [0.0, 4.0, 8.0, 12.0])


def test_float32_records(tmp_path):
    path = tmp_path / "single.bin"
    source = generate_dataset(2, 3, seed=2)
    assert write_dataset(source, path, dtype="float32") == 3 * 104

    dataset = Reader(2, path, dtype="float32").read()

    assert len(dataset) == 3
    np.testing.assert_allclose(dataset.ground_states(), source.ground_states(), rtol=1e-6, atol=1e-7)


def test_write_csv_reproduces_fields_and_coefficients(tmp_path, dataset_file, dataset):
    reader = Reader(2, dataset_file)
    reader.read()

    input_path, output_path = reader.write_csv(tmp_path)

    input_lines = input_path.read_text().splitlines()
    output_lines = output_path.read_text().splitlines()

    assert input_lines[0] == "J[1], Bx[1], Bz[1]... J[n], Bx[n], Bz[n]"
    assert output_lines[0] == "c[1], c[2], c[3]... c[n] "
    assert len(input_lines) == len(output_lines) == len(dataset) + 1

    for i, (fields, _, wavefx) in enumerate(dataset):
        row = input_lines[i + 1].split(',')
        assert int(row[0]) == i + 1
        expected = np.stack([fields.coupling, fields.transverse, fields.longitudinal], axis=1).ravel()
        np.testing.assert_allclose([float(v) for v in row[1:]], expected)

        row = output_lines[i + 1].split(',')
        assert int(row[0]) == i + 1
        np.testing.assert_allclose([float(v) for v in row[1:]], wavefx.ravel(order='F'))


def test_print_dumps_every_instance(capsys, dataset_file, dataset):
    reader = Reader(2, dataset_file)
    reader.read()
    reader.print()

    out = capsys.readouterr().out
    assert out.count("INSTANCE") == len(dataset)
    assert "Eigenvalues:" in out
    assert "Eigenvectors:" in out


def test_print_uses_scientific_notation(capsys, dataset_file, dataset):
    reader = Reader(2, dataset_file)
    reader.read()
    reader.print()

    out = capsys.readouterr().out
    eigenvalues = out.split("Eigenvalues:\n", 1)[1].split("\n\n", 1)[0]
    assert f"{dataset.values[0][0]:.6e}" in eigenvalues
    assert f"{dataset.wavefx[0][0, 0]:.6e}" in out


def test_write_dataset_of_empty_dataset(tmp_path):
    path = tmp_path / "none.bin"
    assert write_dataset(Dataset((), (), ()), path) == 0


def test_field_record_rejects_ragged_arrays():
    with pytest.raises(ValueError):
        FieldRecord(coupling=[1.0, 2.0], transverse=[1.0], longitudinal=[1.0, 2.0])
