import itertools
import random

import pytest
from bitarray import bitarray

import huffman_core as hc
from bit_stream import BitInputStream, BitOutputStream


def _counts(data):
	return hc.HuffmanLogic().read_for_counts(BitInputStream(data))


def _code_strings(codes):
	return {symbol: code.to01() for symbol, code in codes.items()}


def test_read_for_counts_sets_pseudo_eof():
	counts = _counts(b"aab")
	assert len(counts) == hc.ALPH_SIZE + 1
	assert counts[ord('a')] == 2
	assert counts[ord('b')] == 1
	assert counts[hc.PSEUDO_EOF] == 1
	assert sum(counts) == 4


def test_read_for_counts_empty():
	counts = _counts(b"")
	assert counts[hc.PSEUDO_EOF] == 1
	assert sum(counts) == 1


def test_build_tree_weights():
	logic = hc.HuffmanLogic()
	tree = logic.build_tree(_counts(b"aaaaabbc"))
	root = tree.nodes[tree.root]
	assert root.weight == 9
	for index in tree.preorder():
		node = tree.nodes[index]
		if not tree.is_leaf(index):
			assert node.symbol == 0
			assert node.weight == tree.nodes[node.left].weight + tree.nodes[node.right].weight


def test_tie_break_gives_fixed_codes():
	logic = hc.HuffmanLogic()
	codes = logic.generate_codes(logic.build_tree(_counts(b"aaaaabbc")))
	assert _code_strings(codes) == {
		ord('a'): '1',
		ord('b'): '00',
		ord('c'): '010',
		hc.PSEUDO_EOF: '011',
	}


def test_single_symbol_tree_has_two_leaves():
	logic = hc.HuffmanLogic()
	tree = logic.build_tree(_counts(b"A" * 1000))
	assert sorted(tree.leaves()) == [ord('A'), hc.PSEUDO_EOF]
	assert tree.depth() == 1
	assert _code_strings(logic.generate_codes(tree)) == {hc.PSEUDO_EOF: '0', ord('A'): '1'}


def test_empty_input_tree_gets_placeholder():
	logic = hc.HuffmanLogic()
	tree = logic.build_tree(_counts(b""))
	assert tree.leaves() == [0, hc.PSEUDO_EOF]
	assert tree.nodes[tree.root].weight == 1


def test_placeholder_avoids_present_symbol():
	counts = [0] * (hc.ALPH_SIZE + 1)
	counts[0] = 3
	tree = hc.HuffmanLogic().build_tree(counts)
	assert sorted(tree.leaves()) == [0, 1]


def test_build_tree_rejects_empty_table():
	with pytest.raises(ValueError):
		hc.HuffmanLogic().build_tree([0] * (hc.ALPH_SIZE + 1))


def test_codes_form_a_prefix_code():
	rng = random.Random(5)
	data = bytes(rng.choice(b"abcdefghij\x00\xff") for _ in range(5000))
	codes = hc.HuffmanLogic().generate_codes(hc.HuffmanLogic().build_tree(_counts(data)))
	for a, b in itertools.permutations(codes.values(), 2):
		if len(a) <= len(b):
			assert b[:len(a)] != a
	# Full binary tree: Kraft sum is exactly one
	assert sum(2.0 ** -len(code) for code in codes.values()) == pytest.approx(1.0)


def test_codes_are_bits():
	codes = hc.HuffmanLogic().generate_codes(hc.HuffmanLogic().build_tree(_counts(b"xy")))
	assert all(isinstance(code, bitarray) for code in codes.values())


def test_root_leaf_gets_empty_code():
	tree = hc.HuffmanTree()
	tree.root = tree.add_leaf(hc.PSEUDO_EOF, 1)
	assert hc.HuffmanLogic().generate_codes(tree) == {hc.PSEUDO_EOF: bitarray()}


def test_header_roundtrip_preserves_shape():
	logic = hc.HuffmanLogic()
	tree = logic.build_tree(_counts(b"mississippi river"))
	out = BitOutputStream()
	logic.write_header(tree, out)
	out.close()

	result = logic.read_header(BitInputStream(out.getvalue()))
	assert result.ok
	rebuilt = result.value
	assert rebuilt.leaves() == tree.leaves()
	assert logic.generate_codes(rebuilt) == logic.generate_codes(tree)
	assert all(node.weight == 0 for node in rebuilt.nodes)


def test_header_bit_layout():
	logic = hc.HuffmanLogic()
	tree = logic.build_tree(_counts(b"A"))
	out = BitOutputStream()
	logic.write_header(tree, out)
	assert out.bits_written == 1 + 2 * (1 + hc.BITS_PER_WORD + 1)
	out.close()
	# Equal weights: 'A' was pushed first so it is the left leaf
	# 0, 1 001000001 ('A'), 1 100000000 (PSEUDO_EOF)
	bits = bitarray()
	bits.frombytes(out.getvalue())
	assert bits.to01()[:out.bits_written] == "0" + "1001000001" + "1100000000"


def test_read_header_truncated():
	result = hc.HuffmanLogic().read_header(BitInputStream(b"\x00"))
	assert not result.ok
	assert "truncated tree header" in str(result.error)


def test_read_header_truncated_in_leaf_value():
	out = BitOutputStream()
	out.write_bits(1, 0)
	out.write_bits(1, 1)
	out.write_bits(5, 0)
	out.close()
	result = hc.HuffmanLogic().read_header(BitInputStream(out.getvalue()))
	assert isinstance(result.error, hc.FormatError)


def test_read_header_illegal_leaf_value():
	out = BitOutputStream()
	out.write_bits(1, 1)
	out.write_bits(hc.BITS_PER_WORD + 1, 511)
	out.close()
	result = hc.HuffmanLogic().read_header(BitInputStream(out.getvalue()))
	assert "illegal leaf value 511" in str(result.error)


def test_read_header_rejects_oversized_tree():
	result = hc.HuffmanLogic().read_header(BitInputStream(b"\x00" * 100))
	assert "too many nodes" in str(result.error)


def test_decode_payload_stops_at_pseudo_eof():
	logic = hc.HuffmanLogic()
	tree = logic.build_tree(_counts(b"aaaaabbc"))
	# b=00 a=1 EOF=011, trailing bits after EOF are ignored
	payload = BitOutputStream()
	payload.write_code(bitarray("001011" + "111"))
	payload.close()
	out = BitOutputStream()
	result = logic.decode_payload(tree, BitInputStream(payload.getvalue()), out)
	assert result.ok and result.value == 2
	out.close()
	assert out.getvalue() == b"ba"


def test_decoded_unwrap():
	assert hc.Decoded.success(3).unwrap() == 3
	failed = hc.Decoded.failure("bad")
	assert not failed.ok
	with pytest.raises(hc.FormatError, match="bad"):
		failed.unwrap()
