"""
Tests for a single expansion pass.

The cascade is replaced by FakeCascade so each test controls exactly
which cells decode and to what.
"""

import logging

import pytest
from pytoniq_core import begin_cell

from cell_abi_viewer.cell_values import CellDictionary, Comment, DictionaryEntries, Structured
from cell_abi_viewer.expander import ExpansionResult, PayloadExpander

from conftest import FakeCascade, build_comment


@pytest.fixture
def expander(fake_cascade):
    return PayloadExpander(fake_cascade)


class TestIdentity:
    """A pass that decodes nothing hands back the very same object."""

    @pytest.mark.parametrize('value', [None, 0, 10 ** 30, 'text', b'\x00', True, 1.5])
    def test_primitives(self, expander, value):
        result = expander.expand(value)
        assert result == ExpansionResult(data=value, has_changes=False)

    def test_undecodable_cell(self, expander):
        cell = build_comment('x')
        result = expander.expand(cell)
        assert result.data is cell
        assert not result.has_changes

    def test_nested_structure_without_decodable_cells(self, expander):
        value = Structured(
            fields={'a': 1, 'items': [build_comment('x'), {'b': 'c'}], 'note': Comment('n')},
            type_name='Thing',
        )
        result = expander.expand(value)
        assert result.data is value
        assert not result.has_changes

    def test_plain_dict(self, expander):
        value = {'a': [1, 2], 'b': {'c': None}}
        assert expander.expand(value).data is value

    def test_cascade_exception_leaves_cell(self):
        expander = PayloadExpander(FakeCascade(error=RuntimeError('broken')))
        cell = build_comment('x')
        result = expander.expand({'payload': cell})
        assert result.data['payload'] is cell
        assert not result.has_changes

    def test_cascade_exception_logged(self, caplog):
        expander = PayloadExpander(FakeCascade(error=RuntimeError('broken')),
                                   logger=logging.getLogger('test.expander'))
        with caplog.at_level(logging.DEBUG, logger='test.expander'):
            expander.expand(build_comment('x'))
        assert 'broken' in caplog.text


class TestCellSplicing:

    def test_decoded_cell_replaced(self, expander, fake_cascade):
        cell = build_comment('x')
        fake_cascade.add(cell, Comment('x'))

        result = expander.expand(cell)

        assert result.has_changes
        assert result.data == {'data': cell.to_boc().hex(), 'parsed': Comment('x')}

    def test_cell_inside_structured(self, expander, fake_cascade):
        cell = build_comment('x')
        fake_cascade.add(cell, Comment('x'))
        value = Structured(fields={'op': 1, 'payload': cell}, type_name='Msg')

        result = expander.expand(value)

        assert result.has_changes
        assert isinstance(result.data, Structured)
        assert result.data.type_name == 'Msg'
        assert result.data.fields['op'] == 1
        assert result.data.fields['payload']['parsed'] == Comment('x')
        # input is not mutated
        assert value.fields['payload'] is cell

    def test_unchanged_keys_keep_references(self, expander, fake_cascade):
        cell = build_comment('x')
        fake_cascade.add(cell, Comment('x'))
        untouched = {'deep': [1, 2, 3]}
        value = {'payload': cell, 'other': untouched}

        result = expander.expand(value)

        assert result.data['other'] is untouched
        assert result.data is not value

    def test_key_order_preserved(self, expander, fake_cascade):
        cell = build_comment('x')
        fake_cascade.add(cell, Comment('x'))
        value = {'z': 1, 'payload': cell, 'a': 2}

        assert list(expander.expand(value).data) == ['z', 'payload', 'a']

    def test_list_order_preserved(self, expander, fake_cascade):
        decodable = build_comment('yes')
        raw = build_comment('no')
        fake_cascade.add(decodable, Comment('yes'))

        result = expander.expand([raw, decodable, 3])

        assert result.has_changes
        assert result.data[0] is raw
        assert result.data[1]['parsed'] == Comment('yes')
        assert result.data[2] == 3

    def test_tuple_stays_tuple(self, expander, fake_cascade):
        cell = build_comment('x')
        fake_cascade.add(cell, Comment('x'))
        result = expander.expand((cell, 1))
        assert isinstance(result.data, tuple)
        assert result.data[1] == 1

    def test_one_level_per_pass(self, expander, fake_cascade):
        """A newly decoded value is not re-entered in the same pass."""
        inner = build_comment('inner')
        outer = begin_cell().store_uint(1, 8).store_ref(inner).end_cell()
        fake_cascade.add(outer, Structured(fields={'body': inner}, type_name='Outer'))
        fake_cascade.add(inner, Comment('inner'))

        first = expander.expand(outer)
        assert first.data['parsed'].fields['body'] is inner

        second = expander.expand(first.data)
        assert second.has_changes
        assert second.data['parsed'].fields['body']['parsed'] == Comment('inner')

        third = expander.expand(second.data)
        assert not third.has_changes

    def test_hint_passed_through(self, expander, fake_cascade):
        expander.expand({'a': [build_comment('x')]}, hint='my schema')
        assert [hint for _, hint in fake_cascade.calls] == ['my schema']


class TestDictionaries:

    def test_cell_dictionary_flattened(self, expander):
        value = CellDictionary(key_bits=8, entries={1: 'one', 2: 'two'})
        result = expander.expand(value)
        assert result.has_changes
        assert result.data == DictionaryEntries(entries={1: 'one', 2: 'two'})

    def test_empty_dictionary_still_a_change(self, expander):
        result = expander.expand(CellDictionary(key_bits=8, entries={}))
        assert result.has_changes
        assert result.data == DictionaryEntries(entries={})

    def test_entries_expanded_on_next_pass(self, expander, fake_cascade):
        cell = build_comment('x')
        fake_cascade.add(cell, Comment('x'))

        first = expander.expand(CellDictionary(key_bits=8, entries={5: cell}))
        second = expander.expand(first.data)

        assert isinstance(second.data, DictionaryEntries)
        assert second.data.entries[5]['parsed'] == Comment('x')

    def test_dictionary_entries_without_cells_unchanged(self, expander):
        value = DictionaryEntries(entries={1: 'a'})
        assert expander.expand(value).data is value


class TestDepthLimit:

    def test_depth_limit_stops_descent(self, fake_cascade, caplog):
        cell = build_comment('x')
        fake_cascade.add(cell, Comment('x'))
        expander = PayloadExpander(fake_cascade, max_depth=2,
                                   logger=logging.getLogger('test.expander'))

        value = {'a': {'b': {'c': cell}}}
        with caplog.at_level(logging.WARNING, logger='test.expander'):
            result = expander.expand(value)

        assert not result.has_changes
        assert result.data is value
        assert 'depth limit' in caplog.text

    def test_within_depth_limit(self, fake_cascade):
        cell = build_comment('x')
        fake_cascade.add(cell, Comment('x'))
        expander = PayloadExpander(fake_cascade, max_depth=3)

        result = expander.expand({'a': {'b': cell}})
        assert result.data['a']['b']['parsed'] == Comment('x')
