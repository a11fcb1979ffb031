#!./venv/bin/python

import os
import shutil
import subprocess
import sys
import traceback
import unittest


if __name__ == '__main__':
    successful = False
    stream = sys.stdout

    def println(s: str = '') -> None:
        if s:
            stream.write(s)
        stream.write('\n')
        stream.flush()

    try:
        println('§0  Setup')
        println(f'    Python:    {sys.executable}')
        println(f'    Directory: {os.getcwd()}')
        println()

        pyright = shutil.which('pyright') or './node_modules/.bin/pyright'
        if os.path.exists(pyright):
            println('§1  Type Checking')
            subprocess.run([pyright], check=True)
            println()
        else:
            println('§1  Type Checking (skipped, pyright is not installed)')
            println()

        println('§2  Unit Testing')
        runner = unittest.main(
            module='test',
            exit=False,
            testRunner=unittest.TextTestRunner(stream=stream, verbosity=2),
        )
        successful = runner.result.wasSuccessful()

    except subprocess.CalledProcessError:
        println('nbdsetsize failed to type check!')
        sys.exit(1)
    except Exception as x:
        println(''.join(traceback.format_exception(x)))

    sys.exit(not successful)
