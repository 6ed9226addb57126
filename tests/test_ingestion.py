# ========================
# tests/test_ingestion.py
# ========================

import unittest
import tempfile
import io
import os
import sys
import csv

# Add the project root to Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from src.reporting.ingestion import CSVReader, REQUIRED_FIELDS, check_header, reader_from_bytes
from src.reporting.exceptions import MissingFieldError


def order_row(order_id, price='10.00', category='Books'):
    values = {
        'order_id': order_id,
        'ordered_at': '2024-01-01T10:00:00Z',
        'customer_email': 'test@example.com',
        'item_name': 'Product',
        'item_specs': 'color=black',
        'item_price': price,
        'commission': '1.00',
        'refunded': '0',
        'payment_status': 'paid',
        'country': 'DE',
        'shipped_at': '',
        'delivered_at': '',
        'category': category,
    }
    return [values[field] for field in REQUIRED_FIELDS]


class TestDataIngestion(unittest.TestCase):
    """Test the CSV ingestion module."""

    def write_csv(self, rows):
        with tempfile.NamedTemporaryFile(mode='w', suffix='.csv', delete=False, newline='') as f:
            writer = csv.writer(f)
            writer.writerows(rows)
            temp_file_path = f.name
        self.addCleanup(os.unlink, temp_file_path)
        return temp_file_path

    def test_csv_reader_chunked_processing(self):
        """Test that CSVReader properly chunks data."""
        temp_file_path = self.write_csv([
            list(REQUIRED_FIELDS),
            order_row('ORD-001'),
            order_row('ORD-002'),
            order_row('ORD-003'),
            order_row('ORD-004'),
        ])

        reader = CSVReader(temp_file_path)
        chunks = list(reader.read_in_chunks(chunk_size=2))

        # Should have 2 chunks: both with 2 records each (4 total records)
        self.assertEqual(len(chunks), 2)
        self.assertEqual(len(chunks[0]), 2)
        self.assertEqual(len(chunks[1]), 2)

        # Verify header was read correctly
        self.assertEqual(reader.header, list(REQUIRED_FIELDS))
        self.assertEqual(reader.rows_read, 4)

        # Verify data content and row numbering
        first_record = chunks[0][0]
        self.assertEqual(first_record['order_id'], 'ORD-001')
        self.assertEqual(first_record['category'], 'Books')
        self.assertEqual(first_record[CSVReader.ROW_NUMBER_KEY], 1)
        self.assertEqual(chunks[1][1][CSVReader.ROW_NUMBER_KEY], 4)

    def test_csv_reader_extra_columns_are_kept(self):
        """Columns beyond the required set do not break the reader."""
        temp_file_path = self.write_csv([
            list(REQUIRED_FIELDS) + ['notes'],
            order_row('ORD-001') + ['gift'],
        ])
        chunks = list(CSVReader(temp_file_path).read_in_chunks(chunk_size=10))
        self.assertEqual(chunks[0][0]['notes'], 'gift')

    def test_csv_reader_file_not_found(self):
        """Test CSVReader behavior with non-existent file."""
        reader = CSVReader("non_existent_file.csv")

        with self.assertRaises(FileNotFoundError):
            list(reader.read_in_chunks(chunk_size=10))

    def test_csv_reader_empty_file(self):
        """Test CSVReader behavior with empty CSV file."""
        with tempfile.NamedTemporaryFile(mode='w', suffix='.csv', delete=False) as f:
            temp_file_path = f.name
        self.addCleanup(os.unlink, temp_file_path)

        reader = CSVReader(temp_file_path)
        chunks = list(reader.read_in_chunks(chunk_size=10))
        self.assertEqual(len(chunks), 0)  # No chunks for empty file

    def test_csv_reader_header_only(self):
        temp_file_path = self.write_csv([list(REQUIRED_FIELDS)])
        self.assertEqual(list(CSVReader(temp_file_path).read_in_chunks(chunk_size=10)), [])

    def test_csv_reader_missing_field(self):
        """A header without a required field is rejected before any row is read."""
        header = [field for field in REQUIRED_FIELDS if field != 'refunded']
        temp_file_path = self.write_csv([header, ['x'] * len(header)])

        reader = CSVReader(temp_file_path)
        with self.assertRaises(MissingFieldError) as ctx:
            list(reader.read_in_chunks(chunk_size=10))
        self.assertEqual(ctx.exception.field, 'refunded')
        self.assertEqual(reader.rows_read, 0)

    def test_csv_reader_invalid_chunk_size(self):
        reader = CSVReader(io.StringIO(""))
        with self.assertRaises(ValueError):
            list(reader.read_in_chunks(chunk_size=0))

    def test_csv_reader_large_chunk_size(self):
        """Test CSVReader with chunk size larger than data."""
        temp_file_path = self.write_csv([
            list(REQUIRED_FIELDS),
            order_row('ORD-001'),
            order_row('ORD-002'),
        ])
        chunks = list(CSVReader(temp_file_path).read_in_chunks(chunk_size=100))

        # Should have 1 chunk containing all records
        self.assertEqual(len(chunks), 1)
        self.assertEqual(len(chunks[0]), 2)

    def test_reader_from_bytes_strips_bom(self):
        buffer = io.StringIO(newline='')
        writer = csv.writer(buffer)
        writer.writerow(REQUIRED_FIELDS)
        writer.writerow(order_row('ORD-001', category='Books > Comics'))
        content = b'\xef\xbb\xbf' + buffer.getvalue().encode('utf-8')

        reader = reader_from_bytes(content, name='orders.csv')
        chunks = list(reader.read_in_chunks(chunk_size=10))
        self.assertEqual(reader.header[0], 'order_id')
        self.assertEqual(chunks[0][0]['category'], 'Books > Comics')

    def test_check_header(self):
        check_header(list(REQUIRED_FIELDS))
        with self.assertRaises(MissingFieldError):
            check_header(['order_id'])


if __name__ == '__main__':
    unittest.main()
