from dictidx import errors
from dictidx import io_utils
from dictidx import reader

from dictidx.reader import IndexRecord, idx_iterator, index_loader, read_ifo
