import pytest

from tinyunix.matrix import main, matrix_alloc, matrix_mul


def _identity(n):
    m = matrix_alloc(n)
    for i, row in enumerate(m):
        row[i] = 1
    return m


def test_alloc_is_zero_square():
    m = matrix_alloc(3)
    assert m == [[0, 0, 0], [0, 0, 0], [0, 0, 0]]


def test_alloc_rows_are_independent():
    m = matrix_alloc(2)
    m[0][0] = 5
    assert m[1][0] == 0


def test_identity_is_neutral():
    x = [[1, 2, 3], [4, 5, 6], [7, 8, 9]]
    assert matrix_mul(x, _identity(3)) == x
    assert matrix_mul(_identity(3), x) == x


def test_zero_annihilates():
    x = [[1, 2], [3, 4]]
    assert matrix_mul(matrix_alloc(2), x) == matrix_alloc(2)


def test_associative():
    a = [[1, 2], [3, 4]]
    b = [[0, 1], [1, 0]]
    c = [[2, 0], [1, 3]]
    assert matrix_mul(matrix_mul(a, b), c) == matrix_mul(a, matrix_mul(b, c))


def test_known_product():
    assert matrix_mul([[1, 2], [3, 4]], [[5, 6], [7, 8]]) == [[19, 22], [43, 50]]


def test_wraps_to_32_bits():
    assert matrix_mul([[1 << 16]], [[1 << 16]]) == [[0]]


def test_mismatched_shapes_raise():
    with pytest.raises(ValueError):
        matrix_mul([[1, 2]], [[1, 2]])


def test_main_prints_finished(capsys):
    assert main(["4", "3"]) == 0
    assert capsys.readouterr().out == "finished testproc2\n"