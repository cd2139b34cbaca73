import laspy
import meshio
import numpy as np
import pytest

from util import file_import
from util.file_import import ParseError, RawPoints


def _write(tmp_path, name, text):
    path = tmp_path / name
    path.write_text(text, encoding="utf8")
    return str(path)


class TestReadText:
    """The viewer's whitespace separated text format."""

    def test_reads_columns(self, tmp_path):
        """Columns are latitude, longitude, elevation and intensity."""
        filename = _write(tmp_path, "points.txt", "47.5 8.25 412.75 12\n47.25 8.5 399.0 200\n")
        raw = file_import.read(filename)

        assert isinstance(raw, RawPoints)
        np.testing.assert_array_equal(raw.latitudes, [47.5, 47.25])
        np.testing.assert_array_equal(raw.longitudes, [8.25, 8.5])
        np.testing.assert_array_equal(raw.elevations, [412.75, 399.0])
        np.testing.assert_array_equal(raw.intensities, [12, 200])
        assert raw.intensities.dtype == np.uint8

    def test_xyz_extension_and_blank_lines(self, tmp_path):
        """.xyz files use the same format and blank lines are skipped."""
        filename = _write(tmp_path, "points.xyz", "\n1.0 2.0 3.0 4\n\n5.0 6.0 7.0 8")
        raw = file_import.read(filename)
        assert raw.latitudes.tolist() == [1.0, 5.0]

    def test_empty_file(self, tmp_path):
        """An empty file yields empty arrays."""
        raw = file_import.read(_write(tmp_path, "empty.txt", ""))
        assert raw.latitudes.shape == (0,)
        assert raw.intensities.shape == (0,)

    @pytest.mark.parametrize("line", [
        "47.5 8.25 412.75",
        "47.5 8.25 412.75 12 99",
        "47 8.25 412.75 12",
        "47.5 abc. 412.75 12",
        "47.5 8.25 412.75 256",
        "47.5 8.25 412.75 -3",
        "47.5 8.25 412.75 1.5",
        "47.5 8.25 412.75 ²",
        "47.5 8.25 412.75 ٣",
    ])
    def test_malformed_line(self, tmp_path, line):
        """Malformed lines raise ParseError naming the line."""
        filename = _write(tmp_path, "bad.txt", "1.0 2.0 3.0 4\n" + line + "\n")
        with pytest.raises(ParseError, match=":2:"):
            file_import.read(filename)

    def test_unsupported_extension(self, tmp_path):
        """Unknown formats are rejected."""
        with pytest.raises(ParseError):
            file_import.read(_write(tmp_path, "points.csv", "1,2,3,4\n"))


class TestReadBinaryFormats:
    """Formats read through laspy and meshio."""

    def test_las(self, tmp_path):
        """LAS x/y map to longitude/latitude and 16 bit intensity is rescaled."""
        header = laspy.LasHeader(point_format=3, version="1.2")
        header.offsets = np.array([0.0, 0.0, 0.0])
        header.scales = np.array([0.01, 0.01, 0.01])
        las = laspy.LasData(header)
        las.x = np.array([100.0, 101.0, 102.0])
        las.y = np.array([50.0, 51.0, 52.0])
        las.z = np.array([10.0, 11.0, 12.0])
        las.intensity = np.array([0, 32768, 65535], dtype=np.uint16)
        path = str(tmp_path / "points.las")
        las.write(path)

        raw = file_import.read(path)
        np.testing.assert_allclose(raw.longitudes, [100.0, 101.0, 102.0])
        np.testing.assert_allclose(raw.latitudes, [50.0, 51.0, 52.0])
        np.testing.assert_allclose(raw.elevations, [10.0, 11.0, 12.0])
        assert raw.intensities.tolist() == [0, 128, 255]

    def test_ply_intensity(self, tmp_path):
        """PLY files provide intensity through a point attribute."""
        points = np.array([[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]])
        path = str(tmp_path / "points.ply")
        meshio.Mesh(points, [], point_data={"intensity": np.array([7.0, 9.0])}).write(path)

        raw = file_import.read(path)
        np.testing.assert_allclose(raw.longitudes, [1.0, 4.0])
        np.testing.assert_allclose(raw.latitudes, [2.0, 5.0])
        np.testing.assert_allclose(raw.elevations, [3.0, 6.0])
        assert raw.intensities.tolist() == [7, 9]


class TestToByteIntensity:
    """Rescaling of intensities into a byte."""

    def test_byte_range_untouched(self):
        """Values already in [0, 255] keep their value."""
        assert file_import.to_byte_intensity([0, 17, 255]).tolist() == [0, 17, 255]

    def test_wide_range_rescaled(self):
        """Larger values are scaled so the peak becomes 255."""
        assert file_import.to_byte_intensity([0, 510, 1020]).tolist() == [0, 128, 255]
