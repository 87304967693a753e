"""Input/output utilities for XML formatting."""

import xml.etree.ElementTree as ET
from xml.dom.minidom import parseString


def pretty_xml_string(root: ET.Element) -> str:
    """Formats an XML Element into a pretty-printed XML string without blank lines.

    Args:
        root (ET.Element): The root element of the XML tree to be formatted.

    Returns:
        str: The indented XML document.
    """
    xml_str = ET.tostring(root, encoding="utf-8").decode("utf-8")
    pretty_xml = parseString(xml_str).toprettyxml(indent="  ")
    return "\n".join([line for line in pretty_xml.splitlines() if line.strip()])


def pretty_write_xml(root: ET.Element, file_path: str):
    """Formats an XML Element into a pretty-printed XML string and writes it to a specified file.

    Args:
        root (ET.Element): The root element of the XML tree to be formatted.
        file_path (str): The path to the file where the formatted XML will be written.
    """
    with open(file_path, "w") as file:
        file.write(pretty_xml_string(root))
