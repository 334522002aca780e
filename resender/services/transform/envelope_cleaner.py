import logging

from lxml import etree

logger = logging.getLogger(__name__)

ENVELOPE_TAG = "Envelope"
SECTION_TAG = "Payload"
SOURCE_ATTRIBUTE = "source"
INPUT_SOURCE = "Input"


class EnvelopeCleaner:
    """
    Strips every payload section that did not come from the input stage out of an envelope.

    Cleaning is best-effort: a payload that is not XML, or that is not wrapped in the
    expected envelope element, is returned exactly as it was given.
    """

    def __init__(
        self,
        envelope_tag: str = ENVELOPE_TAG,
        section_tag: str = SECTION_TAG,
        source_attribute: str = SOURCE_ATTRIBUTE,
        keep_source: str = INPUT_SOURCE,
    ) -> None:
        self.__envelope_tag = envelope_tag
        self.__section_tag = section_tag
        self.__source_attribute = source_attribute
        self.__keep_source = keep_source
        self.__parser = etree.XMLParser(
            resolve_entities=False, no_network=True, remove_blank_text=False, huge_tree=True
        )

    def clean(self, payload_text: str) -> str:
        if not payload_text or not payload_text.lstrip().startswith("<"):
            return payload_text

        try:
            root = etree.fromstring(payload_text.encode("utf-8"), parser=self.__parser)
        except (etree.XMLSyntaxError, ValueError) as e:
            logger.debug(f"Payload is not well-formed XML, leaving it untouched: {e}")
            return payload_text

        if etree.QName(root).localname != self.__envelope_tag:
            return payload_text

        removed = 0
        for child in list(root):
            if not isinstance(child.tag, str):
                continue
            if etree.QName(child).localname != self.__section_tag:
                continue
            if child.get(self.__source_attribute) == self.__keep_source:
                continue
            self.__remove(child)
            removed += 1

        if removed == 0:
            return payload_text

        logger.debug(f"Removed {removed} non-{self.__keep_source} payload section(s)")
        return etree.tostring(root, encoding="unicode", pretty_print=False)

    @staticmethod
    def __remove(element: etree._Element) -> None:
        # lxml drops the tail together with the element, hand it to the previous node instead
        parent = element.getparent()
        tail = element.tail
        previous = element.getprevious()
        if tail and tail.strip():
            if previous is not None:
                previous.tail = (previous.tail or "") + tail
            else:
                parent.text = (parent.text or "") + tail
        parent.remove(element)
