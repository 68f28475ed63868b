# Licensed to the Apache Software Foundation (ASF) under one or more
# contributor license agreements.  See the NOTICE file distributed with
# this work for additional information regarding copyright ownership.
# The ASF licenses this file to You under the Apache License, Version 2.0
# (the "License"); you may not use this file except in compliance with
# the License.  You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.


"""
Helpers for walking CloudStack XML documents.

The response root element differs per command (``listzonesresponse``,
``queryasyncjobresultresponse``, ...), so lookups search the whole tree by
tag name instead of using a fixed path.
"""

__all__ = [
    "fixxpath",
    "findall",
    "find_first",
    "find_first_text",
    "child_values",
]


def fixxpath(xpath, namespace=None):
    # ElementTree wants namespaces in its xpaths, so here we add them.
    if not namespace:
        return xpath
    return "/".join(["{%s}%s" % (namespace, e) for e in xpath.split("/")])


def findall(element, xpath, namespace=None):
    return element.findall(fixxpath(xpath=xpath, namespace=namespace))


def _tag_matches(node, tag):
    return isinstance(node.tag, str) and node.tag.lower() == tag.lower()


def find_first(element, tag):
    """
    Return the first element named ``tag`` (case-insensitive) anywhere in
    the tree rooted at ``element``, the root itself included.
    """
    if element is None:
        return None

    for node in element.iter():
        if _tag_matches(node, tag):
            return node

    return None


def find_first_text(element, tag, no_text_value=None):
    """
    Return the stripped text of the first ``tag`` element in the tree, or
    ``no_text_value`` if there is no such element or it has no text.
    """
    node = find_first(element, tag)

    if node is None or node.text is None or not node.text.strip():
        return no_text_value

    return node.text.strip()


def child_values(element):
    """
    Return a dictionary of lower-cased child tag names and their stripped
    text. Children without text map to ``None``.
    """
    values = {}

    for child in list(element):
        if not isinstance(child.tag, str):
            continue

        text = child.text.strip() if child.text is not None else None
        values[child.tag.lower()] = text or None

    return values
