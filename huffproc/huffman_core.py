# filename: huffman_core.py

import heapq
import itertools
from collections import namedtuple

from bitarray import bitarray

from bit_stream import EOF

BITS_PER_WORD = 8
BITS_PER_INT = 32
ALPH_SIZE = 1 << BITS_PER_WORD
PSEUDO_EOF = ALPH_SIZE
HUFF_NUMBER = 0xFACE8200
HUFF_TREE = HUFF_NUMBER | 1

# A full binary tree over ALPH_SIZE + 1 leaves
MAX_TREE_NODES = 2 * (ALPH_SIZE + 1) - 1

NO_CHILD = -1


class FormatError(ValueError):
    """Compressed input is not a well-formed Huffman-tree-headed stream."""


class Decoded(namedtuple("Decoded", "value error")):
    """Outcome of a decode step: either a value or a FormatError."""

    __slots__ = ()

    @classmethod
    def success(cls, value):
        return cls(value, None)

    @classmethod
    def failure(cls, message):
        return cls(None, FormatError(message))

    @property
    def ok(self):
        return self.error is None

    def unwrap(self):
        if self.error is not None:
            raise self.error
        return self.value


TreeNode = namedtuple("TreeNode", "symbol weight left right")


class HuffmanTree:
    """Node arena; children and the root are referenced by list index."""

    def __init__(self):
        self.nodes = []
        self.root = NO_CHILD

    def __len__(self):
        return len(self.nodes)

    def add_leaf(self, symbol, weight):
        self.nodes.append(TreeNode(symbol, weight, NO_CHILD, NO_CHILD))
        return len(self.nodes) - 1

    def add_internal(self, left, right):
        weight = self.nodes[left].weight + self.nodes[right].weight
        self.nodes.append(TreeNode(0, weight, left, right))
        return len(self.nodes) - 1

    def is_leaf(self, index):
        node = self.nodes[index]
        return node.left == NO_CHILD and node.right == NO_CHILD

    def leaves(self):
        """Leaf symbols in left-to-right order."""
        return [self.nodes[i].symbol for i in self.preorder() if self.is_leaf(i)]

    def preorder(self):
        stack = [self.root]
        while stack:
            index = stack.pop()
            yield index
            if not self.is_leaf(index):
                node = self.nodes[index]
                stack.append(node.right)
                stack.append(node.left)

    def depth(self):
        deepest = 0
        stack = [(self.root, 0)]
        while stack:
            index, level = stack.pop()
            deepest = max(deepest, level)
            if not self.is_leaf(index):
                node = self.nodes[index]
                stack.append((node.left, level + 1))
                stack.append((node.right, level + 1))
        return deepest


class HuffmanLogic:
    def read_for_counts(self, bit_in):
        counts = [0] * (ALPH_SIZE + 1)
        while True:
            value = bit_in.read_bits(BITS_PER_WORD)
            if value == EOF:
                break
            counts[value] += 1
        counts[PSEUDO_EOF] = 1
        return counts

    def build_tree(self, counts):
        """Greedy merge of the two lightest nodes until one remains.

        Ties go to the node pushed first: leaves are pushed in symbol order,
        merged nodes as they are created. The first node popped becomes the
        left child.
        """
        tree = HuffmanTree()
        present = [symbol for symbol, count in enumerate(counts) if count > 0]
        if not present:
            raise ValueError("frequency table has no symbols")
        if len(present) == 1:
            # Zero-weight placeholder so the tree always has two leaves
            placeholder = 0 if present[0] != 0 else 1
            present = sorted(present + [placeholder])

        sequence = itertools.count()
        priority_queue = []
        for symbol in present:
            index = tree.add_leaf(symbol, counts[symbol])
            heapq.heappush(priority_queue, (counts[symbol], next(sequence), index))

        while len(priority_queue) > 1:
            _, _, left = heapq.heappop(priority_queue)
            _, _, right = heapq.heappop(priority_queue)
            merged = tree.add_internal(left, right)
            heapq.heappush(priority_queue, (tree.nodes[merged].weight, next(sequence), merged))

        tree.root = priority_queue[0][2]
        return tree

    def generate_codes(self, tree):
        codes = {}
        stack = [(tree.root, bitarray(endian="big"))]
        while stack:
            index, path = stack.pop()
            node = tree.nodes[index]
            if tree.is_leaf(index):
                codes[node.symbol] = path
                continue
            right = path.copy()
            right.append(1)
            stack.append((node.right, right))
            left = path.copy()
            left.append(0)
            stack.append((node.left, left))
        return codes

    def write_header(self, tree, bit_out):
        for index in tree.preorder():
            if tree.is_leaf(index):
                bit_out.write_bits(1, 1)
                bit_out.write_bits(BITS_PER_WORD + 1, tree.nodes[index].symbol)
            else:
                bit_out.write_bits(1, 0)

    def read_header(self, bit_in):
        tree = HuffmanTree()
        # Internal nodes still waiting for a child, as (index, slot)
        pending = []
        while True:
            flag = bit_in.read_bits(1)
            if flag == EOF:
                return Decoded.failure("truncated tree header")
            if len(tree) >= MAX_TREE_NODES:
                return Decoded.failure("tree header has too many nodes")

            if flag == 0:
                index = tree.add_leaf(0, 0)
            else:
                value = bit_in.read_bits(BITS_PER_WORD + 1)
                if value == EOF:
                    return Decoded.failure("truncated tree header")
                if value > PSEUDO_EOF:
                    return Decoded.failure(f"illegal leaf value {value} in tree header")
                index = tree.add_leaf(value, 0)

            if pending:
                parent, slot = pending.pop()
                tree.nodes[parent] = tree.nodes[parent]._replace(**{slot: index})
            else:
                tree.root = index

            if flag == 0:
                pending.append((index, "right"))
                pending.append((index, "left"))
            if not pending:
                return Decoded.success(tree)

    def write_payload(self, codes, bit_in, bit_out):
        count = 0
        while True:
            value = bit_in.read_bits(BITS_PER_WORD)
            if value == EOF:
                bit_out.write_code(codes[PSEUDO_EOF])
                return count
            bit_out.write_code(codes[value])
            count += 1

    def decode_payload(self, tree, bit_in, bit_out):
        if tree.is_leaf(tree.root):
            return Decoded.failure("tree header has no internal node")
        count = 0
        current = tree.root
        while True:
            bit = bit_in.read_bits(1)
            if bit == EOF:
                return Decoded.failure("unexpected end of input, no PSEUDO_EOF")
            node = tree.nodes[current]
            current = node.left if bit == 0 else node.right
            if tree.is_leaf(current):
                symbol = tree.nodes[current].symbol
                if symbol == PSEUDO_EOF:
                    return Decoded.success(count)
                bit_out.write_bits(BITS_PER_WORD, symbol)
                count += 1
                current = tree.root
