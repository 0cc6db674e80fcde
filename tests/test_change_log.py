#!/usr/bin/env python3
"""
ABOUTME: Unit tests for ChangeLog upsert, grouping and JSONL persistence
"""

import json

import pytest

from _page_edit_helpers import create_record

from html_edit.change_log import ChangeLog  # type: ignore[import-not-found]
from html_edit.common import AncestorEntry  # type: ignore[import-not-found]


class TestUpsert:
    """Tests for ChangeLog.upsert"""

    def test_creates_on_first_sight(self):
        log = ChangeLog()
        record, created = log.upsert(
            'node-1', lambda: create_record(key='node-1', new_text='ignored'), 'Hello world'
        )
        assert created is True
        assert len(log) == 1
        assert record.new_text == 'Hello world'
        assert record.timestamp > 0
        assert 'node-1' in log

    def test_update_keeps_old_text(self):
        log = ChangeLog()
        log.upsert('node-1', lambda: create_record(key='node-1'), 'First')
        record, created = log.upsert(
            'node-1', lambda: create_record(key='node-1', old_text='WRONG'), 'Second', '<b>Second</b>'
        )
        assert created is False
        assert len(log) == 1
        assert record.old_text == 'Hello there'
        assert record.new_text == 'Second'
        assert record.new_html == '<b>Second</b>'

    def test_factory_not_called_on_update(self):
        log = ChangeLog()
        log.upsert('node-1', lambda: create_record(key='node-1'), 'First')

        def boom():
            raise AssertionError("factory called for existing key")

        log.upsert('node-1', boom, 'Second')
        assert log.get('node-1').new_text == 'Second'

    def test_order_and_index_consistent(self):
        log = ChangeLog()
        for key in ('node-3', 'node-1', 'node-2'):
            log.upsert(key, lambda key=key: create_record(key=key), f'text {key}')
        log.upsert('node-1', lambda: create_record(key='node-1'), 'updated')
        assert [r.key for r in log] == ['node-3', 'node-1', 'node-2']
        assert log.get('node-1').new_text == 'updated'
        assert log.get('missing') is None

    def test_key_mismatch_rejected(self):
        log = ChangeLog()
        with pytest.raises(ValueError):
            log.upsert('node-1', lambda: create_record(key='node-2'), 'x')
        assert len(log) == 0

    def test_duplicate_add_rejected(self):
        log = ChangeLog()
        log.add(create_record(key='node-1'))
        with pytest.raises(ValueError):
            log.add(create_record(key='node-1'))


class TestGroupBySource:
    """Tests for ChangeLog.group_by_source"""

    def test_groups_in_first_appearance_order(self):
        log = ChangeLog()
        log.add(create_record(key='a', source_file='footer.html'))
        log.add(create_record(key='b', source_file='index.html'))
        log.add(create_record(key='c', source_file='footer.html'))
        groups = log.group_by_source()
        assert list(groups) == ['footer.html', 'index.html']
        assert [r.key for r in groups['footer.html']] == ['a', 'c']


class TestJsonl:
    """Tests for save_jsonl / load_jsonl"""

    def test_save_and_load(self, tmp_path):
        log = ChangeLog()
        log.add(create_record(
            key='node-7',
            source_file='footer.html',
            tag='A',
            old_text='Contact',
            new_text='Contact Us',
            class_signature=['nav-link'],
            ancestor_signature=[AncestorEntry('DIV', ['card'], '')],
            nth_path='a:nth-of-type(1)',
        ))
        path = log.save_jsonl(tmp_path / 'changes.jsonl', {'page_path': 'index.html'})

        lines = path.read_text(encoding='utf-8').splitlines()
        meta_line = json.loads(lines[0])
        assert meta_line['type'] == 'meta'
        assert meta_line['page_path'] == 'index.html'
        assert meta_line['record_count'] == 1

        meta, loaded = ChangeLog.load_jsonl(path)
        assert meta['page_path'] == 'index.html'
        record = loaded.get('node-7')
        assert record == log.get('node-7')
        assert record.ancestor_signature[0].classes == ['card']

    def test_missing_meta_raises(self, tmp_path):
        path = tmp_path / 'changes.jsonl'
        path.write_text(json.dumps(create_record().to_dict()) + '\n', encoding='utf-8')
        with pytest.raises(ValueError, match="meta"):
            ChangeLog.load_jsonl(path)

    def test_incomplete_record_raises(self, tmp_path):
        path = tmp_path / 'changes.jsonl'
        path.write_text('{"type": "meta"}\n{"key": "node-1", "tag": "P"}\n', encoding='utf-8')
        with pytest.raises(ValueError, match="source_file"):
            ChangeLog.load_jsonl(path)

    def test_invalid_json_raises(self, tmp_path):
        path = tmp_path / 'changes.jsonl'
        path.write_text('{"type": "meta"}\n{not json\n', encoding='utf-8')
        with pytest.raises(ValueError, match="line 2"):
            ChangeLog.load_jsonl(path)
