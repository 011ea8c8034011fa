import os
import sys

# Put the huffproc module directory on the path
HUFFPROC_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'huffproc'))
if HUFFPROC_DIR not in sys.path:
	sys.path.insert(0, HUFFPROC_DIR)
