import unittest

from epubmeta.namespaces import XmlQuery
from epubmeta.xmlobject import ATTRIBUTES_KEY, TEXT_KEY, translate_element, translate_tag

OPF = (
    "<?xml version=\"1.0\" encoding=\"utf-8\"?>"
    "<package xmlns=\"http://www.idpf.org/2007/opf\" version=\"2.0\">"
    "<metadata xmlns:dc=\"http://purl.org/dc/elements/1.1/\" xmlns:opf=\"http://www.idpf.org/2007/opf\""
    " xmlns:x=\"http://example.com/x/\">"
    "<dc:title>Sample</dc:title>"
    "<dc:creator opf:role=\"aut\">Ann Author</dc:creator>"
    "<dc:subject>one</dc:subject>"
    "<!-- ignored -->"
    "<dc:subject>two</dc:subject>"
    "<meta name=\"cover\" content=\"cover-image\"/>"
    "<x:empty/>"
    "<x:custom><x:inner>deep</x:inner></x:custom>"
    "</metadata></package>"
)


class TranslateTests(unittest.TestCase):
    def setUp(self) -> None:
        self.q = XmlQuery(OPF)
        self.node = translate_element(self.q.first("metadata"))

    def test_text_only_child_becomes_scalar(self) -> None:
        self.assertEqual(self.node["dc$title"], "Sample")

    def test_text_with_attributes_keeps_both(self) -> None:
        creator = self.node["dc$creator"]
        self.assertEqual(creator[TEXT_KEY], "Ann Author")
        self.assertIn("aut", creator[ATTRIBUTES_KEY].values())

    def test_repeated_tags_become_ordered_list(self) -> None:
        self.assertEqual(self.node["dc$subject"], ["one", "two"])

    def test_attribute_only_element_nests_attributes(self) -> None:
        self.assertEqual(
            self.node["opf$meta"],
            {ATTRIBUTES_KEY: {"name": "cover", "content": "cover-image"}},
        )

    def test_unknown_namespace_uses_local_name(self) -> None:
        self.assertEqual(self.node["custom"], {"inner": "deep"})
        self.assertNotIn("empty", self.node)

    def test_root_attributes_include_namespace_declarations(self) -> None:
        attributes = self.node[ATTRIBUTES_KEY]
        self.assertEqual(attributes["xmlns:dc"], "http://purl.org/dc/elements/1.1/")

    def test_translate_tag_on_leaf(self) -> None:
        self.assertEqual(translate_tag(self.q.first("dc$title")), "Sample")


if __name__ == "__main__":
    unittest.main()
