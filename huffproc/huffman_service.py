# filename: huffman_service.py

import logging
from collections import namedtuple

from bit_stream import BitInputStream, BitOutputStream, EOF
from huffman_core import BITS_PER_INT, HUFF_TREE, Decoded, HuffmanLogic

logger = logging.getLogger(__name__)

DEBUG_LOW = 1
DEBUG_HIGH = 4

CompressionStats = namedtuple("CompressionStats", "bytes_in bits_out leaves")


class HuffmanService:
    """Two-pass Huffman compressor whose output carries its own tree.

    Output layout: 32-bit HUFF_TREE tag, preorder tree header, payload
    codes ending with the PSEUDO_EOF code, zero-padded to a whole byte.
    """

    def __init__(self, debug=0):
        self.logic = HuffmanLogic()
        self.debug = debug

    def compress(self, bit_in, bit_out):
        """Compress `bit_in` into `bit_out`; `bit_in` must support reset()."""
        counts = self.logic.read_for_counts(bit_in)
        tree = self.logic.build_tree(counts)
        codes = self.logic.generate_codes(tree)
        if self.debug >= DEBUG_HIGH:
            logger.debug("tree depth %d, %d leaves", tree.depth(), len(codes))
            for symbol in sorted(codes):
                logger.debug("code %d -> %s", symbol, codes[symbol].to01())

        bit_out.write_bits(BITS_PER_INT, HUFF_TREE)
        self.logic.write_header(tree, bit_out)
        header_bits = bit_out.bits_written

        bit_in.reset()
        bytes_in = self.logic.write_payload(codes, bit_in, bit_out)
        bit_out.close()

        stats = CompressionStats(bytes_in, bit_out.bits_written, len(tree.leaves()))
        if self.debug >= DEBUG_LOW:
            logger.info(
                "compressed %d bytes into %d bits (%d header, %d leaves)",
                stats.bytes_in, stats.bits_out, header_bits, stats.leaves,
            )
        return stats

    def try_decompress(self, bit_in, bit_out):
        """Decompress without raising on malformed input.

        Returns a Decoded holding the number of bytes written, or the
        FormatError that stopped decoding. `bit_out` is only closed on
        success.
        """
        tag = bit_in.read_bits(BITS_PER_INT)
        if tag != HUFF_TREE:
            if tag == EOF:
                return Decoded.failure("unrecognized header tag: input too short")
            return Decoded.failure(f"unrecognized header tag {tag:#010x}")

        result = self.logic.read_header(bit_in)
        if not result.ok:
            return result
        tree = result.value
        if self.debug >= DEBUG_HIGH:
            logger.debug(
                "header tree: %d nodes, depth %d, leaves %s",
                len(tree), tree.depth(), tree.leaves(),
            )

        result = self.logic.decode_payload(tree, bit_in, bit_out)
        if not result.ok:
            return result
        bit_out.close()
        if self.debug >= DEBUG_LOW:
            logger.info(
                "decompressed %d bits into %d bytes (%d padding bits)",
                bit_in.bits_read, result.value, bit_in.remaining(),
            )
        return result

    def decompress(self, bit_in, bit_out):
        """Decompress `bit_in` into `bit_out`, raising FormatError on bad input."""
        result = self.try_decompress(bit_in, bit_out)
        if not result.ok:
            logger.warning("decompression failed: %s", result.error)
        return result.unwrap()

    def compress_bytes(self, data):
        bit_out = BitOutputStream()
        self.compress(BitInputStream(data), bit_out)
        return bit_out.getvalue()

    def decompress_bytes(self, data):
        bit_out = BitOutputStream()
        self.decompress(BitInputStream(data), bit_out)
        return bit_out.getvalue()

    def compress_file(self, src_path, dst_path):
        with open(src_path, "rb") as f:
            bit_in = BitInputStream(f)
        with open(dst_path, "wb") as f:
            return self.compress(bit_in, BitOutputStream(f))

    def decompress_file(self, src_path, dst_path):
        # Decode fully before touching dst_path so bad input leaves no file
        with open(src_path, "rb") as f:
            data = self.decompress_bytes(f.read())
        with open(dst_path, "wb") as f:
            f.write(data)
        return len(data)
