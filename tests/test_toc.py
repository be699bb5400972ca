import asyncio
import tempfile
import unittest
from pathlib import Path

from epubmeta.archive import EpubArchive
from epubmeta.models import NcxToc, XhtmlToc
from epubmeta.toc import (
    clean_xhtml_title,
    decode_char_refs,
    read_ncx_toc,
    read_toc,
    read_xhtml_toc,
    target_path,
)

from epub_fixtures import NAV_XHTML, TOC_NCX, write_epub


class TocHelperTests(unittest.TestCase):
    def test_decode_char_refs(self) -> None:
        self.assertEqual(decode_char_refs("&#65;&#x41;&#X42;"), "AAB")
        self.assertEqual(decode_char_refs("Caf&#233; &amp; co"), "Café &amp; co")
        self.assertEqual(decode_char_refs("&#99999999999;"), "&#99999999999;")

    def test_clean_xhtml_title(self) -> None:
        self.assertIsNone(clean_xhtml_title("i. Preface"))
        self.assertIsNone(clean_xhtml_title("ⅱ. Foreword"))
        self.assertEqual(clean_xhtml_title("3. Chapter Three"), "Chapter Three")
        self.assertEqual(clean_xhtml_title("&#51;. Chapter Three"), "Chapter Three")
        self.assertEqual(clean_xhtml_title("Epilogue"), "Epilogue")
        self.assertEqual(clean_xhtml_title("2001. A Year"), "A Year")

    def test_front_matter_needs_a_roman_numeral(self) -> None:
        self.assertIsNone(clean_xhtml_title("xiv. Notes"))
        self.assertIsNone(clean_xhtml_title("lxxxix. Appendix"))
        self.assertEqual(clean_xhtml_title("did. it"), "did. it")
        self.assertEqual(clean_xhtml_title("mix. tape"), "mix. tape")
        self.assertEqual(clean_xhtml_title("iiii. Four"), "iiii. Four")

    def test_target_path(self) -> None:
        self.assertEqual(target_path("OEBPS/nav.xhtml", "../text/ch1.xhtml#sec2"), "text/ch1.xhtml")
        self.assertEqual(target_path("OEBPS/nav.xhtml", "Text/ch%201.xhtml"), "OEBPS/Text/ch 1.xhtml")
        self.assertEqual(target_path("toc.ncx", "ch1.xhtml"), "ch1.xhtml")


class ReadTocTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        path = write_epub(
            Path(self._tmp.name) / "book.epub",
            files={
                "OEBPS/nav.xhtml": NAV_XHTML,
                "OEBPS/toc.ncx": TOC_NCX,
                "Text/ch3.xhtml": "third",
            },
        )
        self.archive = EpubArchive(path)

    def tearDown(self) -> None:
        self.archive.close()
        self._tmp.cleanup()

    def test_xhtml_toc_filters_and_cleans_titles(self) -> None:
        toc = asyncio.run(read_xhtml_toc(self.archive, "OEBPS/nav.xhtml"))
        self.assertEqual(
            [(chapter.path, chapter.title) for chapter in toc],
            [
                ("OEBPS/Text/ch1.xhtml", "Chapter A"),
                ("OEBPS/Text/ch 2.xhtml", "Bravo"),
                ("Text/ch3.xhtml", "Chapter Three"),
            ],
        )

    def test_ncx_toc_keeps_document_order(self) -> None:
        toc = asyncio.run(read_ncx_toc(self.archive, "OEBPS/toc.ncx"))
        self.assertEqual(
            [(chapter.path, chapter.title) for chapter in toc],
            [
                ("OEBPS/Text/prologue.xhtml", "Prologue é"),
                ("OEBPS/Text/part a.xhtml", "Part A"),
                ("OEBPS/Text/kept.xhtml", "i. Kept"),
            ],
        )

    def test_read_toc_dispatches_on_pointer_type(self) -> None:
        xhtml = asyncio.run(read_toc(self.archive, XhtmlToc("OEBPS/nav.xhtml")))
        ncx = asyncio.run(read_toc(self.archive, NcxToc("OEBPS/toc.ncx")))
        self.assertEqual(len(xhtml), 3)
        self.assertEqual(len(ncx), 3)

    def test_chapters_read_lazily_from_archive(self) -> None:
        toc = asyncio.run(read_xhtml_toc(self.archive, "OEBPS/nav.xhtml"))
        self.assertEqual(asyncio.run(toc[2].read()), "third")


if __name__ == "__main__":
    unittest.main()
