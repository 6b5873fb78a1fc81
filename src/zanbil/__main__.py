from zanbil.cli import main

main()
