"""
Run the docstring examples of the modules that have them.
"""

import doctest
import unittest

from particlemorph import display, landmarks, normalizer, session, signals, util

MODULES_WITH_EXAMPLES = (util, signals, normalizer, landmarks, session, display)


class TestDocExamples(unittest.TestCase):
    def test_doc_examples(self):
        for module in MODULES_WITH_EXAMPLES:
            with self.subTest(module=module.__name__):
                results = doctest.testmod(module, optionflags=doctest.ELLIPSIS)
                self.assertEqual(results.failed, 0)


if __name__ == "__main__":
    unittest.main()
