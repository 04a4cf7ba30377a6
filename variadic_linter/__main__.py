from variadic_linter.cli import main

main()
