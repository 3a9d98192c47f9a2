from varnishkit.cli import main

main()
