"""Migration v001: signature graph, archive documents, tags and users."""

from __future__ import annotations

from ArchiveCore.storage.migration import Migration

MIGRATION = Migration(
    version=1,
    description="Initial schema: signature graph, documents, tags, users",
    sql="""
        CREATE TABLE IF NOT EXISTS signature_components (
          id INTEGER PRIMARY KEY AUTOINCREMENT,
          name TEXT NOT NULL UNIQUE,
          description TEXT,
          index_type TEXT NOT NULL DEFAULT 'dec'
            CHECK (index_type IN ('dec', 'roman', 'small_char', 'capital_char')),
          index_count INTEGER NOT NULL DEFAULT 0
        );

        CREATE TABLE IF NOT EXISTS signature_elements (
          id INTEGER PRIMARY KEY AUTOINCREMENT,
          component_id INTEGER NOT NULL,
          name TEXT NOT NULL,
          idx TEXT,
          description TEXT,
          FOREIGN KEY (component_id) REFERENCES signature_components(id) ON DELETE CASCADE
        );

        CREATE INDEX IF NOT EXISTS idx_elements_component
          ON signature_elements(component_id);

        CREATE INDEX IF NOT EXISTS idx_elements_name
          ON signature_elements(name COLLATE NOCASE);

        CREATE TABLE IF NOT EXISTS signature_element_parents (
          child_id INTEGER NOT NULL,
          parent_id INTEGER NOT NULL,
          PRIMARY KEY (child_id, parent_id),
          CHECK (child_id <> parent_id),
          FOREIGN KEY (child_id) REFERENCES signature_elements(id) ON DELETE CASCADE,
          FOREIGN KEY (parent_id) REFERENCES signature_elements(id) ON DELETE CASCADE
        );

        CREATE INDEX IF NOT EXISTS idx_element_parents_parent
          ON signature_element_parents(parent_id);

        CREATE TABLE IF NOT EXISTS tags (
          id INTEGER PRIMARY KEY AUTOINCREMENT,
          name TEXT NOT NULL UNIQUE,
          description TEXT
        );

        CREATE TABLE IF NOT EXISTS archive_documents (
          id INTEGER PRIMARY KEY AUTOINCREMENT,
          title TEXT NOT NULL,
          creator TEXT,
          document_date TEXT,
          number_of_pages INTEGER,
          is_digitized INTEGER NOT NULL DEFAULT 0,
          language TEXT,
          descriptive_signatures TEXT NOT NULL DEFAULT '[]',
          topographic_signatures TEXT NOT NULL DEFAULT '[]',
          created_on TEXT NOT NULL DEFAULT (date('now'))
        );

        CREATE INDEX IF NOT EXISTS idx_documents_date
          ON archive_documents(document_date);

        CREATE TABLE IF NOT EXISTS archive_document_tags (
          document_id INTEGER NOT NULL,
          tag_id INTEGER NOT NULL,
          PRIMARY KEY (document_id, tag_id),
          FOREIGN KEY (document_id) REFERENCES archive_documents(id) ON DELETE CASCADE,
          FOREIGN KEY (tag_id) REFERENCES tags(id) ON DELETE CASCADE
        );

        CREATE INDEX IF NOT EXISTS idx_document_tags_tag
          ON archive_document_tags(tag_id);

        CREATE TABLE IF NOT EXISTS users (
          id INTEGER PRIMARY KEY AUTOINCREMENT,
          login TEXT NOT NULL UNIQUE,
          role TEXT NOT NULL DEFAULT 'user'
            CHECK (role IN ('admin', 'employee', 'user')),
          active INTEGER NOT NULL DEFAULT 1
        );
    """,
)
